"""Clinic logo storage."""

import logging
import os

from django.core.files.storage import default_storage
from django.db import transaction
from django.utils import timezone
from django.utils.text import get_valid_filename

from .clinic_settings import get_setting_value, update_setting
from .exceptions import InvalidLogoError

logger = logging.getLogger(__name__)

ALLOWED_LOGO_TYPES = {
    'image/png',
    'image/jpeg',
    'image/gif',
    'image/webp',
    'image/svg+xml',
}
MAX_LOGO_SIZE = 2 * 1024 * 1024  # 2 MB


@transaction.atomic
def upload_clinic_logo(*, file, user=None) -> str:
    """
    Store a new clinic logo and record its path in ``basic_info.logo_path``.

    The previous logo file, if any, is deleted from storage.

    Args:
        file: Uploaded file (Django UploadedFile)
        user: Staff member performing the upload

    Returns:
        Storage path of the saved logo

    Raises:
        InvalidLogoError: If the file type or size is not accepted
    """
    content_type = getattr(file, 'content_type', '') or ''
    if content_type not in ALLOWED_LOGO_TYPES:
        raise InvalidLogoError("Logo must be a PNG, JPEG, GIF, WebP or SVG image")
    if file.size > MAX_LOGO_SIZE:
        raise InvalidLogoError("Logo must be 2 MB or smaller")

    timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
    name = get_valid_filename(os.path.basename(file.name))
    path = default_storage.save(f"clinic/logo/{timestamp}_{name}", file)

    previous = get_setting_value('basic_info', 'logo_path')
    update_setting(category='basic_info', key='logo_path', value=path, user=user)

    if previous and previous != path and default_storage.exists(previous):
        default_storage.delete(previous)

    logger.info("Clinic logo updated: %s", path)
    return path


@transaction.atomic
def remove_clinic_logo(*, user=None) -> None:
    """Delete the stored logo and clear the setting."""
    previous = get_setting_value('basic_info', 'logo_path')
    if previous and default_storage.exists(previous):
        default_storage.delete(previous)
    update_setting(category='basic_info', key='logo_path', value='', user=user)
