"""Users app package.

Defines the marketplace's custom user model with the farmer, warehouse
owner and administrator roles. Use ``apps.users.models.CustomUser`` as the
AUTH_USER_MODEL throughout the project.
"""
