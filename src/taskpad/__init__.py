"""taskpad: a personal task list with a reactive store and a paste-to-tasks importer."""

__version__ = "0.1.0"
