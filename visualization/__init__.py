"""Sunclock — Visualization Package.

matplotlib figures of illumination masks and the sub-solar track.
"""
