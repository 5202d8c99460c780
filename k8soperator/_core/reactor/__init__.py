"""
The reactor groups all modules to watch & dispatch the resources' events.

The events are the kubernetes watch streams, received on every object change,
including the metadata, status, etc. They are delivered to the author-supplied
callbacks strictly one by one, in the order of arrival, across all resource types.
"""
