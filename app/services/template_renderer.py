"""Service for rendering resume data into the catalog layouts."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from app.models.resume_models import AccountIdentity, ResumeData
from app.services.template_catalog import TemplateCatalog, get_template_catalog
from app.utils.template_helpers import build_resume_view


@dataclass(frozen=True)
class RenderedResume:
    """A rendered HTML document and the layout that produced it."""

    template_id: str
    requested_template_id: Optional[str]
    html: str

    @property
    def used_fallback(self) -> bool:
        return self.template_id != self.requested_template_id


class TemplateRenderer:
    """Service to project ResumeData onto one of the Jinja2 layouts."""

    def __init__(self, template_dir: Path = None, catalog: TemplateCatalog = None):
        """
        Initialize the renderer.

        Args:
            template_dir: Directory containing the layouts. Defaults to app/templates/
            catalog: Template catalog. Defaults to the shared catalog
        """
        if template_dir is None:
            app_dir = Path(__file__).parent.parent
            template_dir = app_dir / "templates"

        self.template_dir = template_dir
        self.catalog = catalog or get_template_catalog()
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml']),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_document(
        self,
        data: ResumeData,
        template_id: Optional[str],
        account: AccountIdentity
    ) -> RenderedResume:
        """
        Render resume data with the requested layout.

        Unknown template ids render the catalog's default layout. The data is
        never modified, and identical input yields identical output.

        Args:
            data: Resume data
            template_id: Requested template id
            account: Signed-in account (name/email fallbacks)

        Returns:
            RenderedResume: HTML plus the template actually used
        """
        template_info = self.catalog.resolve(template_id)
        view = build_resume_view(data, account)

        template = self.env.get_template(f"{template_info.id}.html")
        html = template.render(
            data=data,
            view=view,
            template=template_info,
        )
        return RenderedResume(
            template_id=template_info.id,
            requested_template_id=template_id,
            html=html,
        )

    def render(self, data: ResumeData, template_id: Optional[str], account: AccountIdentity) -> str:
        """Render and return only the HTML string."""
        return self.render_document(data, template_id, account).html
