"""Method groups mixed into PlexRequestsDatabase.

ConfigMixin         settings blobs in app_configs
PlexMappingsMixin   external id -> ratingKey rows in plex_mappings
"""
from src.plexrequests.utils.db_mixins.db_config import ConfigMixin
from src.plexrequests.utils.db_mixins.db_plex_mappings import MappingWriteResult, PlexMappingsMixin

__all__ = ['ConfigMixin', 'PlexMappingsMixin', 'MappingWriteResult']
