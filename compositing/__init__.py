"""Sunclock — Compositing Package.

Day/night composite cache, cloud overlay, and Pillow image helpers.
"""
