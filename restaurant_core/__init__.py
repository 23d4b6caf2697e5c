"""Restaurant Core - auditable content mutations and access control for restaurant sites"""

__version__ = "1.0.0"
