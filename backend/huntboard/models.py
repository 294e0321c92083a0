from datetime import datetime, timezone

from huntboard import db


def utcnow():
    """Naive UTC timestamp; every DateTime column in the schema is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class Event(db.Model):
    __tablename__ = 'event'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    start_time = db.Column(db.DateTime, nullable=True)
    use_random_order = db.Column(db.Boolean, default=False, nullable=False)
    teams = db.relationship('Team', back_populates='event', cascade='all, delete-orphan')
    questions = db.relationship('Question', back_populates='event', cascade='all, delete-orphan')

    @property
    def has_started(self):
        return self.start_time is None or self.start_time <= utcnow()


class Team(db.Model):
    __tablename__ = 'team'
    __table_args__ = (db.UniqueConstraint('name', 'event_id', name='uq_team_name_event'),)
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id', ondelete='CASCADE'), nullable=False, index=True)
    logo_url = db.Column(db.String(512), nullable=True)
    event = db.relationship('Event', back_populates='teams')
    progress = db.relationship('TeamProgress', back_populates='team', cascade='all, delete-orphan')


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(256), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_path = db.Column(db.String(512), nullable=True)
    difficulty = db.Column(db.String(16), nullable=False, default='medium')  # easy, medium, hard
    solution = db.Column(db.String(256), nullable=False)
    tip_1 = db.Column(db.Text, nullable=True)
    tip_2 = db.Column(db.Text, nullable=True)
    tip_3 = db.Column(db.Text, nullable=True)
    time_limit_seconds = db.Column(db.Integer, nullable=False, default=300)
    order_index = db.Column(db.Integer, nullable=True)
    event = db.relationship('Event', back_populates='questions')
    progress = db.relationship('TeamProgress', back_populates='question', cascade='all, delete-orphan')

    def tip_text(self, tip_number):
        return getattr(self, f'tip_{tip_number}')

    def to_public_dict(self):
        """Question payload safe to hand to a team: no solution, no tips."""
        return {
            'id': self.id,
            'event_id': self.event_id,
            'title': self.title,
            'description': self.description,
            'image_path': self.image_path,
            'difficulty': self.difficulty,
            'time_limit_seconds': self.time_limit_seconds,
            'order_index': self.order_index,
        }


class TeamProgress(db.Model):
    __tablename__ = 'team_progress'
    __table_args__ = (db.UniqueConstraint('team_id', 'question_id', name='uq_team_progress_team_question'),)
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='CASCADE'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id', ondelete='CASCADE'), nullable=False)
    attempt_1 = db.Column(db.String(256), nullable=True)
    attempt_2 = db.Column(db.String(256), nullable=True)
    attempt_3 = db.Column(db.String(256), nullable=True)
    used_tip = db.Column(db.Integer, default=0, nullable=False)
    correct = db.Column(db.Boolean, default=False, nullable=False)
    completed = db.Column(db.Boolean, default=False, nullable=False)
    completed_reason = db.Column(db.String(32), nullable=True)  # solved, timeout, max_attempts, solution
    time_started = db.Column(db.DateTime, nullable=True)
    time_answered = db.Column(db.DateTime, nullable=True)
    points_awarded = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    team = db.relationship('Team', back_populates='progress')
    question = db.relationship('Question', back_populates='progress')

    ATTEMPT_SLOTS = ('attempt_1', 'attempt_2', 'attempt_3')

    @property
    def attempts(self):
        return [getattr(self, slot) for slot in self.ATTEMPT_SLOTS if getattr(self, slot) is not None]

    @property
    def attempts_used(self):
        return len(self.attempts)

    def next_free_slot(self):
        for slot in self.ATTEMPT_SLOTS:
            if getattr(self, slot) is None:
                return slot
        return None

    @property
    def state(self):
        if self.completed:
            return {
                'solved': 'solved',
                'timeout': 'timed_out',
                'max_attempts': 'max_attempts_reached',
                'solution': 'solution_revealed',
            }.get(self.completed_reason, 'completed')
        return 'in_progress'

    def summary(self):
        return {
            'attempts_used': self.attempts_used,
            'used_tip': self.used_tip or 0,
            'time_started': _iso(self.time_started),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'team_id': self.team_id,
            'question_id': self.question_id,
            'attempt_1': self.attempt_1,
            'attempt_2': self.attempt_2,
            'attempt_3': self.attempt_3,
            'used_tip': self.used_tip,
            'correct': self.correct,
            'completed': self.completed,
            'completed_reason': self.completed_reason,
            'state': self.state,
            'time_started': _iso(self.time_started),
            'time_answered': _iso(self.time_answered),
            'points_awarded': self.points_awarded,
        }
