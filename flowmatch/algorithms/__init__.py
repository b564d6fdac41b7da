"""Flow algorithms operating on `FlowNetwork` instances."""
