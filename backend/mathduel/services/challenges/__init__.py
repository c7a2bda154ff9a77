"""Daily challenge services: expression synthesis, upsert and scheduling."""
