"""Service layer: finalize, broadcast and Telegram lookups."""
