import json
from matchday.app import db
from matchday.constants import (
    CHALLENGE_PENDING, MATCH_SCHEDULED,
)
from matchday.services.ratings import DEFAULT_RATING
from matchday.time_utils import utcnow_naive, isoformat_or_none


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


def _dump_json(value):
    if value is None:
        return None
    return json.dumps(value)


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30), default='')
    region = db.Column(db.String(50), default='')
    avatar = db.Column(db.String(500), default='')
    bio = db.Column(db.Text, default='')
    city = db.Column(db.String(100), default='')
    country = db.Column(db.String(100), default='')
    gender = db.Column(db.String(30), default='')
    date_of_birth = db.Column(db.Date, nullable=True)
    # Social links
    instagram_url = db.Column(db.String(500), default='')
    twitter_url = db.Column(db.String(500), default='')
    facebook_url = db.Column(db.String(500), default='')
    linkedin_url = db.Column(db.String(500), default='')
    # Sports preferences (JSON lists)
    favorite_sports_json = db.Column(db.Text, default='[]')
    preferred_positions_json = db.Column(db.Text, default='[]')
    favorite_teams_json = db.Column(db.Text, default='[]')
    favorite_players_json = db.Column(db.Text, default='[]')
    skill_level = db.Column(db.String(30), nullable=True)
    # Availability
    weekly_availability_json = db.Column(db.Text, default='{}')
    willing_to_join_teams = db.Column(db.Boolean, default=True)
    # Privacy
    profile_visibility = db.Column(db.String(20), default='PUBLIC')
    email_visibility = db.Column(db.Boolean, default=False)
    email_notifications = db.Column(db.Boolean, default=True)
    push_notifications = db.Column(db.Boolean, default=True)
    qr_code = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    achievements = db.relationship('Achievement', backref='user', lazy='select',
                                   cascade='all, delete-orphan')
    trophies = db.relationship('Trophy', backref='user', lazy='select',
                               cascade='all, delete-orphan')

    @property
    def favorite_sports(self):
        return _safe_json(self.favorite_sports_json, [])

    @favorite_sports.setter
    def favorite_sports(self, value):
        self.favorite_sports_json = _dump_json(list(value or []))

    @property
    def preferred_positions(self):
        return _safe_json(self.preferred_positions_json, [])

    @preferred_positions.setter
    def preferred_positions(self, value):
        self.preferred_positions_json = _dump_json(list(value or []))

    @property
    def favorite_teams(self):
        return _safe_json(self.favorite_teams_json, [])

    @favorite_teams.setter
    def favorite_teams(self, value):
        self.favorite_teams_json = _dump_json(list(value or []))

    @property
    def favorite_players(self):
        return _safe_json(self.favorite_players_json, [])

    @favorite_players.setter
    def favorite_players(self, value):
        self.favorite_players_json = _dump_json(list(value or []))

    @property
    def weekly_availability(self):
        return _safe_json(self.weekly_availability_json, {})

    @weekly_availability.setter
    def weekly_availability(self, value):
        self.weekly_availability_json = _dump_json(dict(value or {}))

    def to_summary_dict(self):
        return {'id': self.id, 'name': self.name, 'avatar': self.avatar}

    def to_public_dict(self):
        data = {
            'id': self.id, 'name': self.name, 'avatar': self.avatar,
            'region': self.region, 'bio': self.bio,
            'city': self.city, 'country': self.country,
            'favoriteSports': self.favorite_sports,
            'skillLevel': self.skill_level,
            'instagramUrl': self.instagram_url, 'twitterUrl': self.twitter_url,
            'facebookUrl': self.facebook_url, 'linkedinUrl': self.linkedin_url,
            'createdAt': isoformat_or_none(self.created_at),
        }
        if self.email_visibility:
            data['email'] = self.email
        return data

    def to_dict(self):
        return {
            'id': self.id, 'email': self.email, 'name': self.name,
            'phone': self.phone, 'region': self.region, 'avatar': self.avatar,
            'bio': self.bio, 'city': self.city, 'country': self.country,
            'gender': self.gender,
            'dateOfBirth': isoformat_or_none(self.date_of_birth),
            'instagramUrl': self.instagram_url, 'twitterUrl': self.twitter_url,
            'facebookUrl': self.facebook_url, 'linkedinUrl': self.linkedin_url,
            'favoriteSports': self.favorite_sports,
            'preferredPositions': self.preferred_positions,
            'favoriteTeams': self.favorite_teams,
            'favoritePlayers': self.favorite_players,
            'skillLevel': self.skill_level,
            'weeklyAvailability': self.weekly_availability,
            'willingToJoinTeams': self.willing_to_join_teams,
            'profileVisibility': self.profile_visibility,
            'emailVisibility': self.email_visibility,
            'emailNotifications': self.email_notifications,
            'pushNotifications': self.push_notifications,
            'qrCode': self.qr_code,
            'isActive': self.is_active,
            'achievements': [a.to_dict() for a in self.achievements],
            'trophies': [t.to_dict() for t in self.trophies],
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }


class Achievement(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(200), default='')
    date_earned = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'userId': self.user_id, 'type': self.type,
            'title': self.title, 'description': self.description,
            'icon': self.icon, 'dateEarned': isoformat_or_none(self.date_earned),
        }


class Trophy(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(200), default='')
    event = db.Column(db.String(200), default='')
    position = db.Column(db.String(50), default='')
    date_earned = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'userId': self.user_id, 'type': self.type,
            'title': self.title, 'description': self.description,
            'icon': self.icon, 'event': self.event, 'position': self.position,
            'dateEarned': isoformat_or_none(self.date_earned),
        }


# ── Teams ─────────────────────────────────────────────────────────────

class Team(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    sport = db.Column(db.String(50), nullable=False)
    region = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, default='')
    avatar = db.Column(db.String(500), default='')
    max_players = db.Column(db.Integer, nullable=False)
    contact_email = db.Column(db.String(120), nullable=False)
    contact_phone = db.Column(db.String(30), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    # Aggregate stats, mutated only by match recording
    wins = db.Column(db.Integer, default=0, nullable=False)
    losses = db.Column(db.Integer, default=0, nullable=False)
    draws = db.Column(db.Integer, default=0, nullable=False)
    matches_played = db.Column(db.Integer, default=0, nullable=False)
    rating = db.Column(db.Integer, default=DEFAULT_RATING, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_team_active_rating', 'is_active', 'rating'),
        db.Index('ix_team_owner_sport', 'owner_id', 'sport'),
    )

    owner = db.relationship('User', backref='owned_teams')
    members = db.relationship('TeamMember', backref='team', lazy='select',
                              cascade='all, delete-orphan')

    def to_summary_dict(self):
        return {
            'id': self.id, 'name': self.name, 'sport': self.sport,
            'region': self.region, 'rating': self.rating, 'avatar': self.avatar,
        }

    def to_dict(self, include_members=False):
        data = {
            'id': self.id, 'name': self.name, 'sport': self.sport,
            'region': self.region, 'description': self.description,
            'avatar': self.avatar, 'maxPlayers': self.max_players,
            'contactEmail': self.contact_email, 'contactPhone': self.contact_phone,
            'ownerId': self.owner_id, 'isActive': self.is_active,
            'wins': self.wins, 'losses': self.losses, 'draws': self.draws,
            'matchesPlayed': self.matches_played, 'rating': self.rating,
            'memberCount': len(self.members),
            'owner': self.owner.to_summary_dict() if self.owner else None,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
        if include_members:
            data['members'] = [m.to_dict() for m in self.members]
        return data


class TeamMember(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    role = db.Column(db.String(20), default='player')  # captain, player
    joined_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('team_id', 'user_id', name='uq_team_member_unique'),
    )

    user = db.relationship('User', backref='team_memberships')

    def to_dict(self):
        return {
            'id': self.id, 'teamId': self.team_id, 'userId': self.user_id,
            'role': self.role, 'joinedAt': isoformat_or_none(self.joined_at),
            'user': self.user.to_summary_dict() if self.user else None,
        }


# ── Challenges & Matches ──────────────────────────────────────────────

class Challenge(db.Model):
    """A proposal from one team to another to play on a given date/time."""
    id = db.Column(db.Integer, primary_key=True)
    from_team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    to_team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    from_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    sport = db.Column(db.String(50), nullable=False)
    proposed_date = db.Column(db.DateTime, nullable=False)
    proposed_time = db.Column(db.String(5), nullable=False)  # HH:MM
    venue = db.Column(db.String(200), nullable=True)
    message = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(20), default=CHALLENGE_PENDING, nullable=False)
    # PENDING, ACCEPTED, DECLINED, COMPLETED, CANCELLED
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_challenge_teams_status', 'from_team_id', 'to_team_id', 'status'),
        db.Index('ix_challenge_to_team_status', 'to_team_id', 'status'),
    )

    from_team = db.relationship('Team', foreign_keys=[from_team_id], backref='sent_challenges')
    to_team = db.relationship('Team', foreign_keys=[to_team_id], backref='received_challenges')
    from_user = db.relationship('User', foreign_keys=[from_user_id], backref='sent_challenges')
    match = db.relationship('Match', back_populates='challenge', uselist=False)

    def to_dict(self):
        return {
            'id': self.id,
            'fromTeamId': self.from_team_id, 'toTeamId': self.to_team_id,
            'fromUserId': self.from_user_id, 'sport': self.sport,
            'proposedDate': isoformat_or_none(self.proposed_date),
            'proposedTime': self.proposed_time,
            'venue': self.venue, 'message': self.message, 'status': self.status,
            'fromTeam': self.from_team.to_summary_dict() if self.from_team else None,
            'toTeam': self.to_team.to_summary_dict() if self.to_team else None,
            'fromUser': {
                'id': self.from_user.id, 'name': self.from_user.name,
                'email': self.from_user.email,
            } if self.from_user else None,
            'matchId': self.match.id if self.match else None,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }


class Match(db.Model):
    """The scheduled fixture and, once recorded, the result of a challenge."""
    id = db.Column(db.Integer, primary_key=True)
    challenge_id = db.Column(db.Integer, db.ForeignKey('challenge.id'),
                             nullable=False, unique=True)
    home_team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=False)
    home_score = db.Column(db.Integer, nullable=True)
    away_score = db.Column(db.Integer, nullable=True)
    sport = db.Column(db.String(50), nullable=False)
    date = db.Column(db.DateTime, nullable=False)
    venue = db.Column(db.String(200), nullable=True)
    status = db.Column(db.String(20), default=MATCH_SCHEDULED, nullable=False)
    # SCHEDULED, ONGOING, COMPLETED, CANCELLED
    winner_id = db.Column(db.Integer, db.ForeignKey('team.id'), nullable=True)
    home_rating_change = db.Column(db.Integer, nullable=True)
    away_rating_change = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    completed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index('ix_match_home_status', 'home_team_id', 'status'),
        db.Index('ix_match_away_status', 'away_team_id', 'status'),
    )

    challenge = db.relationship('Challenge', back_populates='match')
    home_team = db.relationship('Team', foreign_keys=[home_team_id], backref='home_matches')
    away_team = db.relationship('Team', foreign_keys=[away_team_id], backref='away_matches')

    def to_dict(self):
        return {
            'id': self.id, 'challengeId': self.challenge_id,
            'homeTeamId': self.home_team_id, 'awayTeamId': self.away_team_id,
            'homeScore': self.home_score, 'awayScore': self.away_score,
            'sport': self.sport, 'date': isoformat_or_none(self.date),
            'venue': self.venue, 'status': self.status,
            'winnerId': self.winner_id,
            'homeRatingChange': self.home_rating_change,
            'awayRatingChange': self.away_rating_change,
            'homeTeam': self.home_team.to_summary_dict() if self.home_team else None,
            'awayTeam': self.away_team.to_summary_dict() if self.away_team else None,
            'createdAt': isoformat_or_none(self.created_at),
            'completedAt': isoformat_or_none(self.completed_at),
        }


# ── Notifications ─────────────────────────────────────────────────────

class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    data_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_notification_user_read', 'user_id', 'is_read'),
    )

    user = db.relationship('User', backref='notifications')

    def to_dict(self):
        return {
            'id': self.id, 'userId': self.user_id, 'type': self.type,
            'title': self.title, 'message': self.message,
            'isRead': self.is_read,
            'data': _safe_json(self.data_json, None),
            'createdAt': isoformat_or_none(self.created_at),
        }


# ── Posts (profile media gallery) ─────────────────────────────────────

class Post(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    type = db.Column(db.String(10), nullable=False)  # PHOTO, VIDEO, TEXT
    media_url = db.Column(db.String(1000), nullable=False)
    caption = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    author = db.relationship('User', backref='posts')
    likes = db.relationship('PostLike', backref='post', lazy='select',
                            cascade='all, delete-orphan')
    comments = db.relationship('PostComment', backref='post', lazy='select',
                               cascade='all, delete-orphan',
                               order_by='PostComment.created_at')

    def to_dict(self):
        return {
            'id': self.id, 'authorId': self.author_id, 'type': self.type,
            'mediaUrl': self.media_url, 'caption': self.caption,
            'author': self.author.to_summary_dict() if self.author else None,
            'likes': [like.to_dict() for like in self.likes],
            'comments': [comment.to_dict() for comment in self.comments],
            'likeCount': len(self.likes),
            'commentCount': len(self.comments),
            'createdAt': isoformat_or_none(self.created_at),
        }


class PostLike(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('user_id', 'post_id', name='uq_post_like_user_post'),
    )

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id, 'postId': self.post_id, 'userId': self.user_id,
            'user': {'id': self.user.id, 'name': self.user.name} if self.user else None,
        }


class PostComment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id, 'postId': self.post_id, 'userId': self.user_id,
            'content': self.content,
            'user': self.user.to_summary_dict() if self.user else None,
            'createdAt': isoformat_or_none(self.created_at),
        }
