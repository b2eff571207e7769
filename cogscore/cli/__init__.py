"""cogscore command-line interface."""
