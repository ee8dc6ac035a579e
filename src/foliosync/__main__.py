from foliosync.ui.cli import run

run()
