"""Entity mappings for the bookstore data layer."""
