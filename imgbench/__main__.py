from imgbench.cli import cli

cli()
