"""Sunclock — Simulation Package.

Simulated clock, background ticker, and frame-sequence rendering.
"""
