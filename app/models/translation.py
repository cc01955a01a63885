"""Translation model: one localized string per (key, locale)."""
from datetime import datetime, timezone
from uuid import uuid4

from app import db
from app.utils.localization import PluralForms, extract_variables

DEFAULT_CATEGORY = 'general'


def utcnow():
    """Naive UTC timestamp, as stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_translation_id():
    return uuid4().hex


class Translation(db.Model):
    """A localized string identified by its key and locale.

    `id` is a surrogate; lookups always go through (key, locale).
    `variables` is derived from `value` and recomputed on every save.
    """

    __tablename__ = 'translations'

    id = db.Column(db.String(32), primary_key=True, default=new_translation_id)
    key = db.Column(db.String(255), nullable=False)
    locale = db.Column(db.String(8), nullable=False)
    value = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(100), nullable=False, default=DEFAULT_CATEGORY)
    description = db.Column(db.Text, nullable=True)
    variables = db.Column(db.JSON, nullable=False, default=list)
    plural_forms_data = db.Column('plural_forms', db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('key', 'locale', name='uq_translation_key_locale'),
        # Secondary index for locale / category range scans
        db.Index('ix_translations_locale_category_key', 'locale', 'category', 'key'),
    )

    @property
    def plural_forms(self):
        if not self.plural_forms_data:
            return None
        return PluralForms.from_dict(self.plural_forms_data)

    @plural_forms.setter
    def plural_forms(self, forms):
        if forms is None:
            self.plural_forms_data = None
        elif isinstance(forms, PluralForms):
            self.plural_forms_data = forms.to_dict()
        else:
            self.plural_forms_data = PluralForms.from_dict(forms).to_dict()

    def refresh_variables(self):
        """Recompute `variables` from `value`, ignoring whatever was set."""
        self.variables = extract_variables(self.value or '')
        return self.variables

    def to_dict(self):
        """Convert translation to dictionary."""
        return {
            'id': self.id,
            'key': self.key,
            'locale': self.locale,
            'value': self.value,
            'category': self.category or DEFAULT_CATEGORY,
            'description': self.description,
            'variables': list(self.variables or []),
            'plural_forms': self.plural_forms_data,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Translation {self.key} [{self.locale}]>'
