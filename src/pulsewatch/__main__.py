from pulsewatch.cli import cli

cli()
