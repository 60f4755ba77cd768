"""Service layer: pricing engine, promo codes, catalog, checkout."""
