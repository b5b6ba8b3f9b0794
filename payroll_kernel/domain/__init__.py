"""
Pure domain layer.

Frozen DTOs, the formula graph model, name handling and store protocols,
with NO dependencies on the ORM, the database or I/O.
"""
