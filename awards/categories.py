"""
Award category loader — groups and subcategories with their nomination type.

YAML file with in-memory cache and hardcoded fallback if the file is missing.
"""
import logging
import os
from typing import Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger('awards.categories')


_categories = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    def sub(id_, name, type_):
        return {'id': id_, 'name': name, 'type': type_}

    return {
        'version': 'default',
        'groups': [
            {'id': 'role-specific-excellence', 'name': 'Role-Specific Excellence', 'subcategories': [
                sub('top-recruiter', 'Top Recruiter', 'person'),
                sub('top-executive-leader', 'Top Executive Leader', 'person'),
                sub('rising-star-under-30', 'Rising Star (Under 30)', 'person'),
                sub('top-staffing-influencer', 'Top Staffing Influencer', 'person'),
                sub('best-sourcer', 'Best Sourcer', 'person'),
            ]},
            {'id': 'innovation-technology', 'name': 'Innovation & Technology', 'subcategories': [
                sub('top-ai-driven-staffing-platform', 'Top AI-Driven Staffing Platform', 'company'),
                sub('top-digital-experience-for-clients', 'Top Digital Experience for Clients', 'company'),
            ]},
            {'id': 'culture-impact', 'name': 'Culture & Impact', 'subcategories': [
                sub('top-women-led-staffing-firm', 'Top Women-Led Staffing Firm', 'company'),
                sub('fastest-growing-staffing-firm', 'Fastest-Growing Staffing Firm', 'company'),
                sub('best-diversity-inclusion-initiative', 'Best Diversity & Inclusion Initiative', 'company'),
                sub('best-candidate-experience', 'Best Candidate Experience', 'company'),
            ]},
            {'id': 'growth-performance', 'name': 'Growth & Performance', 'subcategories': [
                sub('best-staffing-process-at-scale', 'Best Staffing Process at Scale', 'company'),
                sub('thought-leadership-and-influence', 'Thought Leadership & Influence', 'person'),
                sub('best-recruitment-agency', 'Best Recruitment Agency', 'company'),
                sub('best-in-house-recruitment-team', 'Best In-House Recruitment Team', 'company'),
            ]},
            {'id': 'geographic-excellence', 'name': 'Geographic Excellence', 'subcategories': [
                sub('top-staffing-company-usa', 'Top Staffing Company - USA', 'company'),
                sub('top-staffing-company-europe', 'Top Staffing Company - Europe', 'company'),
                sub('top-global-recruiter', 'Top Global Recruiter', 'person'),
            ]},
            {'id': 'special-recognition', 'name': 'Special Recognition', 'subcategories': [
                sub('special-recognition', 'Special Recognition', 'both'),
            ]},
        ],
    }


def load_categories() -> dict:
    """Load categories from YAML, with in-memory cache and hardcoded fallback."""
    global _categories
    if _categories is not None:
        return _categories

    config_path = os.path.join(os.path.dirname(__file__), 'categories.yaml')
    try:
        with open(config_path, 'r') as f:
            _categories = yaml.safe_load(f)
        logger.info("Categories loaded from YAML (version=%s)", _categories.get('version', '?'))
    except Exception as e:
        logger.warning("Categories YAML not found (%s), using defaults", e)
        _categories = _default_config()

    return _categories


def list_groups() -> List[dict]:
    return load_categories().get('groups', [])


def list_subcategories() -> List[dict]:
    """Flat list of subcategories, each tagged with its groupId."""
    subs = []
    for group in list_groups():
        for sub in group.get('subcategories', []):
            subs.append({**sub, 'groupId': group['id']})
    return subs


def get_subcategory(subcategory_id: str) -> Optional[dict]:
    for sub in list_subcategories():
        if sub['id'] == subcategory_id:
            return sub
    return None


def accepts_type(subcategory_id: str, nominee_type: str) -> bool:
    """True when the subcategory exists and takes nominees of this type."""
    sub = get_subcategory(subcategory_id)
    if sub is None:
        return False
    return sub['type'] in ('both', nominee_type)


def subcategory_ids_for(nominee_type: str) -> List[str]:
    return [s['id'] for s in list_subcategories() if s['type'] in ('both', nominee_type)]


def group_for(subcategory_id: str) -> Optional[str]:
    sub = get_subcategory(subcategory_id)
    return sub['groupId'] if sub else None


def subcategory_names() -> Dict[str, str]:
    return {s['id']: s['name'] for s in list_subcategories()}


def display_names(subcategory_id: str) -> Tuple[str, str]:
    """(group name, subcategory name) for emails; unknown ids echo the id."""
    for group in list_groups():
        for sub in group.get('subcategories', []):
            if sub['id'] == subcategory_id:
                return group['name'], sub['name']
    return subcategory_id or '', subcategory_id or ''


def reset_cache():
    """Reset the in-memory cache (useful for testing)."""
    global _categories
    _categories = None
