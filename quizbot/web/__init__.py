"""HTTP surface for the closed-form submission."""
