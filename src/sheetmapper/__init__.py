"""sheetmapper - map irregular spreadsheets onto fill-in document templates."""

__version__ = "0.1.0"
