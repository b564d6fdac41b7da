"""Graph primitives and helpers.

This package provides node identities (`nodes`), the capacitated directed
graph `FlowNetwork` (`flow_network`) and its serialization (`io`).
"""
