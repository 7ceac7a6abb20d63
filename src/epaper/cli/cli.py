"""CLI entrypoint: Typer app definition and command registration"""

import typer

from epaper.cli.commands import article_cmd, download_cmd, init_cmd, list_cmd, load_cmd, preview_cmd, publish_cmd


app = typer.Typer(name="epaper", no_args_is_help=True, help="Daily newspaper e-paper generation and archive")

app.command(name="init")(init_cmd)
app.command(name="load")(load_cmd)
app.command(name="preview")(preview_cmd)
app.command(name="download")(download_cmd)
app.command(name="publish")(publish_cmd)
app.command(name="article")(article_cmd)
app.command(name="list")(list_cmd)
