"""Client code generators driven by project introspection."""
