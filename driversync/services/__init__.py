"""Service layer for delivery confirmation submissions."""
