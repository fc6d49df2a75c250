"""
GBase Slides

Turns a document into an image-based slide deck: one analysis call plans the
slides, then every slide image is generated through a sequential,
rate-limited Gemini queue.
"""
