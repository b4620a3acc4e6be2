from sqlalchemy import Column, String, Integer, Text
from clarity.db.database import Base


class Category(Base):
    """
    Taxonomy entry. The classifier only assigns slugs; endpoint_count is
    maintained outside this package.
    """
    __tablename__ = "categories"

    slug = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    endpoint_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Category(slug={self.slug}, endpoint_count={self.endpoint_count})>"
