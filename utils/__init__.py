"""Request-level helpers shared by the blueprints."""
