SPORTS = (
    'Football',
    'Basketball',
    'Cricket',
    'Volleyball',
    'Tennis',
    'Badminton',
    'Table Tennis',
    'Hockey',
    'Baseball',
    'Rugby',
)

REGIONS = (
    'North America',
    'South America',
    'Europe',
    'Asia',
    'Africa',
    'Oceania',
)

# Challenge statuses
CHALLENGE_PENDING = 'PENDING'
CHALLENGE_ACCEPTED = 'ACCEPTED'
CHALLENGE_DECLINED = 'DECLINED'
CHALLENGE_COMPLETED = 'COMPLETED'
CHALLENGE_CANCELLED = 'CANCELLED'

# Match statuses
MATCH_SCHEDULED = 'SCHEDULED'
MATCH_ONGOING = 'ONGOING'
MATCH_COMPLETED = 'COMPLETED'
MATCH_CANCELLED = 'CANCELLED'

NOTIFICATION_TYPES = (
    'CHALLENGE_RECEIVED',
    'CHALLENGE_ACCEPTED',
    'CHALLENGE_DECLINED',
    'CHALLENGE_CANCELLED',
    'MATCH_SCHEDULED',
    'MATCH_COMPLETED',
    'TEAM_INVITATION',
    'RATING_UPDATE',
)

POST_TYPES = ('PHOTO', 'VIDEO', 'TEXT')

PROFILE_VISIBILITY_OPTIONS = ('PUBLIC', 'FRIENDS', 'PRIVATE')

SKILL_LEVELS = ('BEGINNER', 'INTERMEDIATE', 'ADVANCED', 'PROFESSIONAL')
