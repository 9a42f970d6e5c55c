"""Client-side helpers used by the staff and user panels."""
