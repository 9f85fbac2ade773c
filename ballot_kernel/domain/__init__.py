"""Pure domain layer: phases, tally, authority, notifications and DTOs."""
