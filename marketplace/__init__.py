"""Checkout pricing and booking backend for the home-services marketplace."""
