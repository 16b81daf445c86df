"""Shared fixtures: an app on in-memory SQLite, users with tokens, and
in-memory .xlsx workbooks built with openpyxl."""
import io

import openpyxl
import pytest

from app import create_app
from models import db, User

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def make_xlsx(sheets):
    """Build workbook bytes from ``[(sheet_title, [row, ...]), ...]``"""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets:
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)

    buffer = io.BytesIO()
    wb.save(buffer)
    wb.close()
    return buffer.getvalue()


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture()
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_ENGINE_OPTIONS': {},
        'JWT_SECRET': 'test-secret',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def create_user(app):
    """Insert a user directly and return its id"""
    def _create(email, password='password1', name='Test User', role='user', status='approved'):
        with app.app_context():
            user = User(email=email, name=name, role=role, status=status)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id
    return _create


@pytest.fixture()
def login(client):
    def _login(email, password='password1'):
        response = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['token']
    return _login


@pytest.fixture()
def user_token(create_user, login):
    create_user('user@example.com')
    return login('user@example.com')


@pytest.fixture()
def admin_token(create_user, login):
    create_user('admin@example.com', role='admin')
    return login('admin@example.com')


@pytest.fixture()
def sales_xlsx():
    return make_xlsx([
        ('Sales', [
            ['Region', 'Units', 'Price'],
            ['North', 10, 2.5],
            ['South', 20, 3.5],
            ['North', 30, 4.5],
        ]),
        ('Notes', [
            ['Note'],
            ['first'],
        ]),
    ])
