"""HTTP ingress for the access relay."""

from accessledger.api.app import create_app

__all__ = ["create_app"]
