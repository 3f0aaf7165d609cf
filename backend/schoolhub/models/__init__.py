from .base import AuditedMixin, new_id
from .media import Document, Image, Video, MEDIA_MODELS, UPLOAD_TYPES
from .owners import (
    Learner, Parent, Teacher, ActivityGroup, SchoolEvent, BlogPost,
    Product, Advertisement, BusinessListing,
)
from .instantiation import (
    OWNER_TYPES, OwnerBundle, instantiate, bundle_for,
    SUB_RECORD_KINDS, MEDIA_KINDS, ADDRESS_TYPES,
)

__all__ = [
    'AuditedMixin', 'new_id',
    'Document', 'Image', 'Video', 'MEDIA_MODELS', 'UPLOAD_TYPES',
    'Learner', 'Parent', 'Teacher', 'ActivityGroup', 'SchoolEvent', 'BlogPost',
    'Product', 'Advertisement', 'BusinessListing',
    'OWNER_TYPES', 'OwnerBundle', 'instantiate', 'bundle_for',
    'SUB_RECORD_KINDS', 'MEDIA_KINDS', 'ADDRESS_TYPES',
]
