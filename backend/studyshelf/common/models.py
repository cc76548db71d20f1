"""
Material record type shared by the store, the ranking pipeline and the API.

The materials table is shaped by the mobile client and grows columns over
time. Fields the ranking logic reads are declared explicitly; everything else
rides along in ``extra`` and is handed back untouched.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, fields


@dataclass
class Material:
    """A study material as stored in the materials table."""
    id: str
    title: str
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    file_name: Optional[str] = None
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Material":
        """
        Build a Material from a loosely shaped record.

        Unknown keys are kept in ``extra``.

        Args:
            data: Record with at least ``id`` and ``title``

        Returns:
            Material instance
        """
        if data.get('id') is None:
            raise ValueError("Material record has no id")

        known = {f.name for f in fields(cls)} - {'extra'}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs['id'] = str(kwargs['id'])
        kwargs['title'] = str(kwargs.get('title') or '')

        tags = kwargs.get('tags')
        if tags is not None:
            if not isinstance(tags, (list, tuple)):
                raise ValueError(f"Material {kwargs['id']}: tags must be a list, got {type(tags).__name__}")
            kwargs['tags'] = [str(t) for t in tags]

        extra = dict(data.get('extra') or {})
        extra.update({k: v for k, v in data.items() if k not in known and k != 'extra'})

        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten back into the record shape the store and clients use."""
        record = dict(self.extra)
        record.update({
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'tags': list(self.tags) if self.tags is not None else None,
            'category': self.category,
            'sub_category': self.sub_category,
            'file_name': self.file_name,
            'created_at': self.created_at,
        })
        return record
