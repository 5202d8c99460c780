"""
Side-actions of the operators, such as the logging of the objects' events.
"""
