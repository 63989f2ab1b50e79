"""
Resource resolution endpoint used by the "view resource" action.
"""

import asyncio
import logging
from dataclasses import asdict

from flask import Blueprint, jsonify, request

from campus_portal.config import app_config
from campus_portal.services.resources import HostCategory, ResolutionError, normalize, user_message
from campus_portal.services.viewer import OPEN_MODE_LINK, build_embed

logger = logging.getLogger(__name__)

# Create blueprint
resources_bp = Blueprint('resources', __name__)

# Global helpers (will be injected from app)
resolver = None


def init_resources_helpers(**kwargs):
    """Initialize helpers from app."""
    global resolver
    resolver = kwargs.get('resolver')


@resources_bp.route('/api/resources/resolve', methods=['POST'])
def resolve_resource():
    data = request.get_json(silent=True) or {}
    resource = normalize(data.get('resource'), data.get('fallback_title') or 'Resource')
    if resource is None:
        return jsonify({'error': 'Resource has no url or storage path'}), 400

    try:
        resolved = asyncio.run(resolver.resolve(resource.locator, resource.mime))
    except ResolutionError as e:
        logger.warning(f"Could not resolve resource '{resource.title}': {e}")
        return jsonify({'error': user_message(e), 'reason': e.reason}), 422

    plan = build_embed(resolved.primary_embed, resource.mime, resource.title, resolver.policy)
    open_in_new_tab = resolved.host_category is HostCategory.DOCUMENT_HOST and app_config.VIEWER_OPEN_MODE == OPEN_MODE_LINK

    return jsonify({
        'resource': asdict(resource),
        'resolved': {
            'final_url': resolved.final_url,
            'host_category': resolved.host_category.value,
            'is_proxied': resolved.is_proxied,
            'primary_embed': resolved.primary_embed,
            'alternate_embed': resolved.alternate_embed,
        },
        'preview_type': plan.preview_type.value,
        'show_open_link': plan.show_open_link,
        'notice': plan.notice,
        'open_in_new_tab': open_in_new_tab,
    })
