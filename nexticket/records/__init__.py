"""Record models, variants, filters, and aggregates"""
