"""Color detection, custom property resolution and versioned refresh pipeline.

Main components:
- colors: Color codec (parse and format hex, rgb(a), hsl(a), compact HSL)
- registry: Declaration registry and nested var() resolution
- scanner: CSS scanner producing custom property and class declarations
- detection: Color occurrence detection in arbitrary text
- pipeline: Versioned result cache, refresh scheduler and coordinator
"""

__version__ = "0.3.0"
