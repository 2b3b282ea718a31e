"""
DentalReview - clinician annotation client for dental photo submissions.

This package contains the main application modules:
- core: Application core and wiring
- ui: Main window
- editor: Annotation canvas, shape model, rendering and export
- models: Submission records returned by the review backend
- services: Application services (config, logging, REST client)
"""

__version__ = "0.1.0"
