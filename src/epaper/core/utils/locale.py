"""Localized date formatting, digits, and fixed page labels"""

from datetime import date


BENGALI_DIGITS = "০১২৩৪৫৬৭৮৯"

MONTHS = {
    "en": ["January", "February", "March", "April", "May", "June",
           "July", "August", "September", "October", "November", "December"],
    "bn": ["জানুয়ারি", "ফেব্রুয়ারি", "মার্চ", "এপ্রিল", "মে", "জুন",
           "জুলাই", "আগস্ট", "সেপ্টেম্বর", "অক্টোবর", "নভেম্বর", "ডিসেম্বর"],
}

# Monday first, matching date.weekday()
WEEKDAYS = {
    "en": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
    "bn": ["সোমবার", "মঙ্গলবার", "বুধবার", "বৃহস্পতিবার", "শুক্রবার", "শনিবার", "রবিবার"],
}

LABELS = {
    "en": {
        "site_name": "The Daily News",
        "page": "Page",
        "news": "News",
        "misc": "Miscellaneous",
        "misc_news": "Miscellaneous News",
        "no_image": "No image",
        "image": "Image",
        "more_news": "More News",
        "ad_space": "Advertisement",
        "rights": "All rights reserved",
        "photo": "Photo",
    },
    "bn": {
        "site_name": "বাংলা সংবাদ",
        "page": "পৃষ্ঠা",
        "news": "সংবাদ",
        "misc": "বিবিধ",
        "misc_news": "বিবিধ সংবাদ",
        "no_image": "ছবি নেই",
        "image": "ছবি",
        "more_news": "আরও সংবাদ",
        "ad_space": "বিজ্ঞাপনের স্থান",
        "rights": "সর্বস্বত্ব সংরক্ষিত",
        "photo": "ছবি",
    },
}


def _check(locale: str) -> str:
    if locale not in LABELS:
        raise ValueError(f"Unsupported locale '{locale}' (expected one of {sorted(LABELS)})")
    return locale


def localize_digits(value: int | str, locale: str) -> str:
    """Render the digits of value in the locale's numeral system."""
    text = str(value)
    if _check(locale) == "bn":
        return "".join(BENGALI_DIGITS[int(ch)] if ch.isdigit() else ch for ch in text)
    return text


def format_date(day: date, locale: str) -> str:
    """Weekday, day month year, e.g. 'Sunday, 18 October 2026'."""
    _check(locale)
    weekday = WEEKDAYS[locale][day.weekday()]
    month = MONTHS[locale][day.month - 1]
    return f"{weekday}, {localize_digits(day.day, locale)} {month} {localize_digits(day.year, locale)}"


def label(key: str, locale: str) -> str:
    return LABELS[_check(locale)][key]


def page_label(number: int, locale: str) -> str:
    return f"{label('page', locale)} {localize_digits(number, locale)}"
