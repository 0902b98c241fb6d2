"""bitbucket/ -- Code Insights client and pull-request decoration.

Layer rule: bitbucket/ may import from core/ and auth/. Nothing in core/ or
auth/ imports from here.
"""

from bitbucket.base import InsightsClient, ProviderError
from bitbucket.cloud import BitbucketCloudClient
from bitbucket.decorator import decorate

__all__ = ["BitbucketCloudClient", "InsightsClient", "ProviderError", "decorate"]
