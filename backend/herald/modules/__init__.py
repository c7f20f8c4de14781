"""Herald feature modules."""
