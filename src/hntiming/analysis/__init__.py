"""Model fitting and visualization of post timing."""
