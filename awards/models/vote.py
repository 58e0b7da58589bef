"""
Voter + Vote models.

One vote per voter per subcategory, enforced by uq_vote_voter_subcategory.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from awards.database import Base


class Voter(Base):
    __tablename__ = 'voters'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)  # lower-cased
    first_name = Column(Text, default='')
    last_name = Column(Text, default='')
    company = Column(Text, nullable=True)
    job_title = Column(Text, nullable=True)
    country = Column(Text, nullable=True)
    linkedin = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_voted_at = Column(DateTime(timezone=True), nullable=True)


class Vote(Base):
    __tablename__ = 'votes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    voter_id = Column(Integer, ForeignKey('voters.id'), nullable=False)
    nomination_id = Column(Integer, ForeignKey('nominations.id', ondelete='CASCADE'), nullable=False)
    subcategory_id = Column(Text, nullable=False)
    ip = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('voter_id', 'subcategory_id', name='uq_vote_voter_subcategory'),
    )
