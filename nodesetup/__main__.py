"""Allow ``python -m nodesetup``."""
from nodesetup.cli import app

app(prog_name="nodesetup")
