"""Sunclock — Solar Engine Package.

Timestamp handling, low-precision solar ephemeris, and the per-pixel
day/night illumination mask for equirectangular world maps.
"""
