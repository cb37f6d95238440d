"""facegen-patcher: donor template matching and facegen staging for NPC records."""

__version__ = "0.1.0"
