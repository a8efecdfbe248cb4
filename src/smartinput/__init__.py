"""Smart input tag extraction for task and event titles."""

__version__ = "0.1.0"
