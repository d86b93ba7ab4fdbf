"""Background scheduling of collection cycles."""
