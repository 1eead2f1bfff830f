"""thisgen scaffolder: project and entity generation plus marker wiring.

Quick usage::

    from thisgen.scaffolder import ProjectGenerator

    generator = ProjectGenerator()
    generator.init_project("shop", "/tmp")
    result = generator.add_entity("/tmp/shop", "product", fields="sku:String,price:f64")
    print(result.wiring.applied)
"""

from thisgen.scaffolder.generator import ProjectGenerator, ScaffoldError
from thisgen.scaffolder.markers import (
    MarkerNotFoundError,
    add_import,
    has_line_after_marker,
    insert_after_marker,
)
from thisgen.scaffolder.templates import TemplateRenderer

__all__ = [
    "MarkerNotFoundError",
    "ProjectGenerator",
    "ScaffoldError",
    "TemplateRenderer",
    "add_import",
    "has_line_after_marker",
    "insert_after_marker",
]
