"""Domain services sitting between the blueprints and the models."""
