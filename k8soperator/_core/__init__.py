"""
The core of the operators: the setup, the watching, the dispatching.
"""
