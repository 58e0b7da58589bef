"""
Nominator — the person who put a nominee forward.

Email is stored lower-cased but is not unique: the same person can be
re-created by different channels. Lookups take the oldest match.
"""
from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from awards.database import Base


class Nominator(Base):
    __tablename__ = 'nominators'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, index=True)
    first_name = Column(Text, default='')
    last_name = Column(Text, default='')
    company = Column(Text, nullable=True)
    job_title = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    country = Column(Text, nullable=True)
    linkedin = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def display_name(self):
        return f'{self.first_name or ""} {self.last_name or ""}'.strip()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'company': self.company,
            'jobTitle': self.job_title,
            'phone': self.phone,
            'country': self.country,
            'linkedin': self.linkedin,
        }
