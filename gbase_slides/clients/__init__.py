"""
Clients Package for GBase Slides

Contains the Gemini clients for text analysis and slide image generation.
"""
