"""family_plan: markdown checklists -> recurring family todos."""

__version__ = "0.1.0"
