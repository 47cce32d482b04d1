"""
rest/ — Authenticated HTTP Commands

Gateway discovery plus the stateless message commands. Every call returns
a RestResult; nothing is logged-and-swallowed.
"""

from cordlink.rest.http import RestClient, RestResult
from cordlink.rest.messages import FetchNamespace, MessageNamespace

__all__ = ["RestClient", "RestResult", "FetchNamespace", "MessageNamespace"]
