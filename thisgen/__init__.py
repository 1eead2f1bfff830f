"""thisgen: scaffolding and introspection for this-rs API projects.

Creates projects and entities from templates, keeps the hand-assembled
wiring files in sync through comment markers, and reads a project back into
structured metadata for client generation and consistency checks.
"""

__version__ = "0.1.0"
