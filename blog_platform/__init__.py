"""Blog Platform - Backend.

A small REST backend for a blogging application:
- Users register / log in and receive a signed, 1 hour JWT.
- Posts are publicly readable and only mutable by their author.

See SPEC_FULL.md for the full behavior contract.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
