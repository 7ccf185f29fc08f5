"""Optional ML extensions.

Installed with ``pip install asrgot[ml]``. Nothing in the core graph imports
this package; its models are loaded lazily on first use.
"""

__all__: list[str] = []
