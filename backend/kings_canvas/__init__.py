"""King's Canvas backend: steps, intentions and opportunity generation."""
