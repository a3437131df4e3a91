"""MicroTodo: a two-service task manager.

An identity service that owns user accounts and issues bearer tokens,
a task service that owns per-user to-do items and trusts those tokens,
and a client that talks to both.
"""

__version__ = "0.1.0"
