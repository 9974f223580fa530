"""
Storage module - Remote media and response persistence.
"""

from interview_media.services.storage.base import BaseObjectStore, BaseResponseStore
from interview_media.services.storage.supabase import SupabaseObjectStore, SupabaseResponseStore
from interview_media.services.storage.uploader import MediaUploader, build_object_path

__all__ = [
    "BaseObjectStore",
    "BaseResponseStore",
    "MediaUploader",
    "SupabaseObjectStore",
    "SupabaseResponseStore",
    "build_object_path",
]
