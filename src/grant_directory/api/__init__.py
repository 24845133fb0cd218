"""HTTP surface for the grant directory."""
