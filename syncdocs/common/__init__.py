"""Small helpers shared across syncdocs packages."""
