# services/post_client.py
import logging

import requests
from flask import current_app

from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class PostClient:
    """Existence check against the posts service; unavailability fails open."""

    @staticmethod
    def exists(post_id: str) -> bool:
        base = current_app.config["POSTS_SERVICE_URL"].rstrip("/")
        timeout = current_app.config["POSTS_SERVICE_TIMEOUT"]
        url = f"{base}/api/posts/{post_id}"
        try:
            resp = requests.get(url, timeout=timeout)
        except requests.RequestException as e:
            logger.warning("posts service unreachable for %s, assuming post exists: %s", post_id, e)
            return True
        if resp.status_code == 404:
            return False
        if resp.status_code >= 400:
            logger.warning("posts service returned %s for %s, assuming post exists", resp.status_code, post_id)
        return True

    @staticmethod
    def ensure_exists(post_id: str):
        if not PostClient.exists(post_id):
            raise NotFoundError("Post not found", error_code="POST_NOT_FOUND")
