"""Feed bounded context: activity feed items and their push fanout."""
