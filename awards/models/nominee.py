"""
Nominee model — a person or a company, deduplicated by normalised email.

Person fields and company fields are mutually exclusive and selected by `type`.
The unique constraint on email_normalized is the final arbiter of duplicates.
"""
from sqlalchemy import Column, Integer, Text, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from awards.database import Base


class Nominee(Base):
    __tablename__ = 'nominees'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Text, nullable=False)  # person | company
    email = Column(Text, nullable=True)
    email_normalized = Column(Text, nullable=True)

    # Person
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    job_title = Column(Text, nullable=True)
    person_company = Column(Text, nullable=True)
    person_phone = Column(Text, nullable=True)
    person_country = Column(Text, nullable=True)
    person_linkedin = Column(Text, nullable=True)
    headshot_url = Column(Text, nullable=True)
    why_me = Column(Text, nullable=True)

    # Company
    company_name = Column(Text, nullable=True)
    company_website = Column(Text, nullable=True)
    company_linkedin = Column(Text, nullable=True)
    company_phone = Column(Text, nullable=True)
    company_country = Column(Text, nullable=True)
    company_industry = Column(Text, nullable=True)
    company_size = Column(Text, nullable=True)
    logo_url = Column(Text, nullable=True)
    why_us = Column(Text, nullable=True)

    bio = Column(Text, nullable=True)
    achievements = Column(Text, nullable=True)
    slug = Column(Text, nullable=True, unique=True)
    live_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('email_normalized', name='uq_nominee_email_normalized'),
    )

    @property
    def display_name(self):
        if self.type == 'company':
            return self.company_name or ''
        return f'{self.first_name or ""} {self.last_name or ""}'.strip()

    @property
    def why_text(self):
        return self.why_us if self.type == 'company' else self.why_me

    @property
    def image_url(self):
        return self.logo_url if self.type == 'company' else self.headshot_url

    @property
    def country(self):
        return self.company_country if self.type == 'company' else self.person_country

    @property
    def linkedin(self):
        return self.company_linkedin if self.type == 'company' else self.person_linkedin

    def to_dict(self):
        data = {
            'id': self.id,
            'type': self.type,
            'name': self.display_name,
            'email': self.email,
            'bio': self.bio,
            'achievements': self.achievements,
            'slug': self.slug,
            'liveUrl': self.live_url,
            'imageUrl': self.image_url,
            'country': self.country,
            'linkedin': self.linkedin,
            'whyVote': self.why_text,
        }
        if self.type == 'company':
            data.update({
                'companyName': self.company_name,
                'website': self.company_website,
                'phone': self.company_phone,
                'industry': self.company_industry,
                'size': self.company_size,
            })
        else:
            data.update({
                'firstName': self.first_name,
                'lastName': self.last_name,
                'jobTitle': self.job_title,
                'company': self.person_company,
                'phone': self.person_phone,
            })
        return data
