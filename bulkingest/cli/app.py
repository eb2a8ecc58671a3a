"""Cyclopts application and command routing for the bulkingest CLI.

The CLI provides the following commands:
- validate: Check a source file against the rule table
- export: Validate and write the intermediate CSV
- load: Import a source file into the destination table
- rules: Print the rule table
- list-readers: List available reader types
- check-config: Validate configuration files
"""

from cyclopts import App

from bulkingest import __version__
from bulkingest.cli import commands

app = App(
    name="bulkingest",
    help="Validated bulk import of employee spreadsheets into PostgreSQL",
    version=__version__,
)

app.command(commands.validate)
app.command(commands.export)
app.command(commands.load)
app.command(commands.rules)
app.command(commands.list_readers, name="list-readers")
app.command(commands.check_config, name="check-config")
