"""
Configuration of the operators: all the settings with their defaults.
"""
