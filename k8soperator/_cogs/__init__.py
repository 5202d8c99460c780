"""
Cogs are the low-level building blocks of the operators, not specific to them.

They know nothing about the operators, the setups, the dispatching of the events.
The operator's machinery (see :mod:`k8soperator._core`) is built from them.
"""
