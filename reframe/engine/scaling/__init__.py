"""Property scalers used by the element transform walker (S1.01)."""
