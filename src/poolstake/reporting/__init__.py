"""Result export."""

from .export import export_csv, export_json, results_frame

__all__ = ["export_csv", "export_json", "results_frame"]
