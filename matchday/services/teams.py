"""Team discovery and aggregate statistics."""
from sqlalchemy import or_

from matchday.app import db
from matchday.errors import NotFoundError
from matchday.models import Team


def search_teams(sport=None, region=None, search=None, page=1, limit=20):
    """Active teams filtered by sport/region/text, best rated first.

    Returns ``(teams, total)`` where ``total`` counts all matches across pages.
    """
    query = Team.query.filter(Team.is_active.is_(True))
    if sport and sport != 'all':
        query = query.filter(Team.sport == sport)
    if region and region != 'all':
        query = query.filter(Team.region == region)
    if search:
        # autoescape keeps % and _ in user input literal
        query = query.filter(or_(
            Team.name.icontains(search, autoescape=True),
            Team.description.icontains(search, autoescape=True),
        ))

    total = query.count()
    teams = query.order_by(
        Team.rating.desc(),
        Team.created_at.desc(),
        Team.id.desc(),
    ).offset((page - 1) * limit).limit(limit).all()
    return teams, total


def get_team_or_404(team_id):
    team = db.session.get(Team, team_id)
    if not team:
        raise NotFoundError('Team not found')
    return team


def win_percentage(team):
    if not team.matches_played:
        return 0
    return round(team.wins / team.matches_played * 100)
