"""K-Spice restaurant storefront backend."""
