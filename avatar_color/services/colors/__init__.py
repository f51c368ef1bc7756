"""
Avatar Color Colors Module

Provides the color model, swatch classification, palette extraction with
fallback, swatch selection and contrast enhancement for avatar images.
"""
