# Importers that write into the destination account

from .template_importer import TemplateImporter

__all__ = [
    "TemplateImporter",
]
