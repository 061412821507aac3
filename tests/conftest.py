import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from learnxp_app import create_app, db
from learnxp_app.config import Config
from learnxp_app.models import User
from learnxp_app.modules.catalog.models import LearningCourse, LearningUnit


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    WTF_CSRF_ENABLED = False
    BACKGROUND_TASKS_ASYNC = False
    LOG_TO_FILE = False
    LOG_LEVEL = 'WARNING'
    SCHEDULER_ENABLED = False
    RATE_TABLE_CACHE_SECONDS = 0


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user_id):
    with client.session_transaction() as session:
        session['_user_id'] = str(user_id)
        session['_fresh'] = True


def make_user(username, role=User.ROLE_USER, timezone='UTC', api_token=None):
    user = User(username=username, email=f'{username}@example.com', user_role=role,
                timezone=timezone, api_token=api_token)
    user.set_password('password123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def learner(app):
    return make_user('learner', api_token='learner-token')


@pytest.fixture
def other_learner(app):
    return make_user('other_learner')


@pytest.fixture
def admin(app):
    return make_user('admin', role=User.ROLE_ADMIN)


@pytest.fixture
def catalog(app):
    """Course 'py101' (intermediate): genre g1, theme t1 with sessions s1 and s2."""
    course = LearningCourse(course_id='py101', title='Python 101', difficulty='intermediate',
                            badge_title='Pythonista')
    odd = LearningCourse(course_id='odd', title='Odd Course', difficulty='legendary')
    db.session.add_all([course, odd])
    db.session.add_all([
        LearningUnit(course_id='py101', genre_id='g1', theme_id='t1', session_id='s1',
                     category_id='programming', subcategory_id='python'),
        LearningUnit(course_id='py101', genre_id='g1', theme_id='t1', session_id='s2',
                     category_id='programming', subcategory_id='python'),
        LearningUnit(course_id='odd', genre_id='g1', theme_id='t1', session_id='s1',
                     category_id='misc', subcategory_id='odd'),
    ])
    db.session.commit()
    return course


def quiz_answer(correct=True, difficulty='basic', category='math', subcategory='algebra', question_id=None):
    answer = {
        'is_correct': correct,
        'difficulty': difficulty,
        'category_id': category,
        'subcategory_id': subcategory,
        'time_spent': 5,
    }
    if question_id:
        answer['question_id'] = question_id
    return answer


def quiz_payload(answers, **extra):
    payload = {'answers': answers, 'total_questions': len(answers)}
    payload.update(extra)
    return payload


def course_payload(session_id='s1', course_id='py101', quiz_correct=True, **extra):
    payload = {
        'course_id': course_id,
        'genre_id': 'g1',
        'theme_id': 't1',
        'session_id': session_id,
        'category_id': 'programming' if course_id == 'py101' else 'misc',
        'subcategory_id': 'python' if course_id == 'py101' else 'odd',
        'confirmation_quiz_correct': quiz_correct,
    }
    payload.update(extra)
    return payload
