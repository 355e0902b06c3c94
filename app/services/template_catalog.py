"""Service for loading the template catalog from YAML."""

import yaml
from pathlib import Path
from typing import Dict, List, Optional
from pydantic import BaseModel
from app.models.response_models import TemplateInfo


class TemplateCatalogData(BaseModel):
    """Catalog file structure."""

    default: str
    templates: List[TemplateInfo]


class TemplateCatalog:
    """Closed set of template identifiers with one designated default."""

    def __init__(self, data_dir: Optional[Path] = None, default_id: Optional[str] = None):
        """
        Initialize the catalog.

        Args:
            data_dir: Directory containing templates.yaml. Defaults to app/data/
            default_id: Overrides the default declared in the file (optional)
        """
        if data_dir is None:
            app_dir = Path(__file__).parent.parent
            data_dir = app_dir / "data"
        self.data_dir = data_dir
        self._data = self._load()
        if default_id:
            self._data.default = default_id
        self._by_id: Dict[str, TemplateInfo] = {t.id: t for t in self._data.templates}

        if self._data.default not in self._by_id:
            raise ValueError(
                f"Default template '{self._data.default}' is not in the catalog"
            )

    def _load(self) -> TemplateCatalogData:
        """
        Load and validate templates.yaml.

        Raises:
            FileNotFoundError: If the catalog file doesn't exist
            ValueError: If the data is invalid
        """
        filepath = self.data_dir / "templates.yaml"
        if not filepath.exists():
            raise FileNotFoundError(f"Template catalog not found: {filepath}")

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML format in {filepath}: {e}")

        try:
            return TemplateCatalogData(**(data or {}))
        except Exception as e:
            raise ValueError(f"Invalid template catalog in {filepath}: {e}")

    @property
    def default_id(self) -> str:
        return self._data.default

    @property
    def templates(self) -> List[TemplateInfo]:
        return list(self._data.templates)

    def ids(self) -> List[str]:
        return [t.id for t in self._data.templates]

    def is_known(self, template_id: Optional[str]) -> bool:
        return bool(template_id) and template_id in self._by_id

    def resolve(self, template_id: Optional[str]) -> TemplateInfo:
        """
        Resolve a template id, falling back to the default layout.

        Args:
            template_id: Requested template id (may be unknown or None)

        Returns:
            TemplateInfo: The matching entry, or the default one
        """
        if self.is_known(template_id):
            return self._by_id[template_id]
        return self._by_id[self._data.default]


# Singleton instance
_catalog: Optional[TemplateCatalog] = None


def get_template_catalog(data_dir: Optional[Path] = None, default_id: Optional[str] = None) -> TemplateCatalog:
    """
    Get or create the template catalog singleton.

    Args:
        data_dir: Optional directory for templates.yaml
        default_id: Optional default template override

    Returns:
        TemplateCatalog: The catalog instance
    """
    global _catalog
    if _catalog is None:
        _catalog = TemplateCatalog(data_dir, default_id)
    return _catalog
