from bake_planner.cli import cli

cli()
