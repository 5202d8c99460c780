"""
Asyncio helpers for the patterns missing in the standard library.

They do not depend on anything in the package; they could be a separate library.
"""
