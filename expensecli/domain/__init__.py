"""Domain Layer: expense models, value objects, events and ports.

Has no dependencies on the core or infrastructure layers.
"""
