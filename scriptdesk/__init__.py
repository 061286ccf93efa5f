"""ScriptDesk: projects, folder hierarchies and versioned scripts over a document store."""

__version__ = "1.0.0"
