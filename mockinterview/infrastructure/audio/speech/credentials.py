"""
Google Cloud credentials for the speech clients.
"""
import logging
from typing import Optional

import google.auth
from google.auth.exceptions import DefaultCredentialsError
from google.oauth2 import service_account

logger = logging.getLogger("speech_credentials")

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def load_credentials(credentials_json: Optional[str] = None):
    """
    Service-account credentials from a JSON key file, else application defaults.

    Returns:
        Credentials, or None when nothing is configured (the client libraries
        then raise their own error on first use)
    """
    if credentials_json:
        logger.info(f"Using service account credentials from {credentials_json}")
        return service_account.Credentials.from_service_account_file(
            credentials_json,
            scopes=[CLOUD_PLATFORM_SCOPE],
        )
    try:
        creds, project = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    except DefaultCredentialsError as e:
        logger.warning(f"No Google credentials configured: {e}")
        return None
    logger.info(f"Using application default credentials (project {project})")
    return creds
