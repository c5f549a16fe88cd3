"""Rendering of bot message text using Jinja2."""

import logging
from typing import Sequence

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from vacancy_scanner.domain.models import ListingRecord

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)


class MessageRenderer:
    """Renders one batch of listings into a bot message.

    Templates live in ``vacancy_scanner/notifications/message_templates``.
    Messages are plain text, so autoescaping is off.
    """

    def __init__(
        self,
        template_dir: str = "message_templates",
        batch_template: str = "listing_batch.txt.j2",
    ):
        self.batch_template_name = batch_template
        self.env = Environment(
            loader=PackageLoader("vacancy_scanner.notifications", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_batch(
        self,
        listings: Sequence[ListingRecord],
        batch_number: int = 1,
        batch_count: int = 1,
        total: int = 0,
    ) -> str:
        """Render the message text for one batch.

        Args:
            listings: Listings in this batch, in display order
            batch_number: 1-based position of the batch
            batch_count: Number of batches in this delivery
            total: Size of the whole backlog being delivered

        Raises:
            NotificationTemplateError: If the template cannot be loaded or rendered
        """
        context = {
            "listings": [
                {
                    "title": listing.title,
                    "employer": listing.employer,
                    "location": listing.location,
                    "work_format": listing.work_format,
                    "salary": listing.salary,
                    "url": listing.url,
                    "published_at": listing.published_at.strftime("%d.%m.%Y %H:%M"),
                }
                for listing in listings
            ],
            "batch_number": batch_number,
            "batch_count": batch_count,
            "total": total or len(listings),
        }
        try:
            return self.env.get_template(self.batch_template_name).render(context).strip()
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e
