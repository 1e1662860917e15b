"""Command-line interface for uri-parser."""

import dataclasses
import json

import click

from .parser import URIError, parse_uri
from .uri import URI

_FIELDS = ("scheme", "user", "host", "port", "path", "query", "fragment")


def _to_record(uri: URI) -> dict:
    """Plain JSON-compatible dict of the URI components."""
    record = dataclasses.asdict(uri)
    del record["source"]
    return record


def _text_lines(uri: URI):
    for name in _FIELDS:
        value = getattr(uri, name)
        if value is None:
            continue
        if name == "query":
            value = "&".join(f"{k}={v}" for k, v in value.items())
        yield f"{name}: {value}"


def _read_lines(fileobj):
    for line in fileobj:
        line = line.rstrip("\r\n")
        if line:
            yield line


@click.command()
@click.argument("uris", nargs=-1)
@click.option(
    "--file",
    "input_file",
    default="-",
    type=click.File(encoding="utf-8"),
    help="File with one URI per line, read when no URI is given (default: stdin)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="json",
    show_default=True,
    help="Output format for the components.",
)
@click.option(
    "--render",
    is_flag=True,
    default=False,
    help="Print the canonical form of each URI instead of its components.",
)
@click.option(
    "--partial",
    is_flag=True,
    default=False,
    help="Treat each input as a possibly truncated buffer.",
)
def main(uris, input_file, output_format, render, partial):
    """Parse URIs and print their components."""
    candidates = list(uris) if uris else list(_read_lines(input_file))

    for i, text in enumerate(candidates):
        try:
            uri = parse_uri(text, partial=partial)
        except URIError as e:
            raise click.ClickException(f"Cannot parse {text!r}\n{e}") from None

        if render:
            click.echo(uri.render())
        elif output_format == "json":
            click.echo(json.dumps(_to_record(uri)))
        else:
            if i:
                click.echo()
            for line in _text_lines(uri):
                click.echo(line)
