"""
Lithophoto - image to lithophane STL generation.

Pipeline:
- Height field: pixel brightness -> relief depth in millimeters
- Solid: relief face + flat back + four walls -> closed triangle mesh
- Export: triangle mesh -> binary STL

Usage:
    lithophoto --input photo.png --output photo.stl --width 100 --thickness 3
"""

__version__ = "0.1.0"
