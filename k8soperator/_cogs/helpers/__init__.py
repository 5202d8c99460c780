"""
General-purpose helpers not related to the operator's domain itself
(neither to the reactor nor to the clients nor to the structs),
which are used to prepare and control the runtime environment.

As a rule of thumb, helpers MUST be abstracted from the package
to such an extent that they could be extracted as reusable libraries.
"""
