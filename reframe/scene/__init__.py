"""Array-backed scene tree plus dict loader/serializer for adapters."""
