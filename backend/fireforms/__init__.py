from .app import InspectionFormsApp

__all__ = ["InspectionFormsApp"]
