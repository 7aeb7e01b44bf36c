"""SupraLend lending protocol parsing — pure functions, no I/O."""
