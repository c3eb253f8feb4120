"""
Mockup - configuration-driven HTTP backend simulator

Serves fixture responses, session authentication and an OpenAPI
description of the simulated surface from a single configuration file.
"""

__version__ = '1.0.0'
