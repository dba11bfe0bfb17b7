from mosaic.auth.authorizer import (
    ADMINISTRATOR_PERMISSION,
    ALLOW_ALL,
    DENY_ALL,
    MANAGE_CONTENT,
    MANAGE_PAGES,
    MANAGE_SCHEMA,
    PUBLISH,
    Authorizer,
    PermissionAuthorizer,
    authorizer_for_api_key,
)

__all__ = [
    "ADMINISTRATOR_PERMISSION",
    "ALLOW_ALL",
    "DENY_ALL",
    "MANAGE_CONTENT",
    "MANAGE_PAGES",
    "MANAGE_SCHEMA",
    "PUBLISH",
    "Authorizer",
    "PermissionAuthorizer",
    "authorizer_for_api_key",
]
