"""GUI-agnostic core: tree model, wrap engine, JMX import/export."""
