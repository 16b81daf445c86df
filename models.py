from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

from utils.serialization import dumps, loads

db = SQLAlchemy()

USER_ROLES = ('user', 'admin')
USER_STATUSES = ('pending', 'approved', 'rejected')
GRAPH_TYPES = ('2d', '3d')
CHART_TYPES = ('bar', 'line', 'pie', 'scatter', 'area', 'radar', '3d-column')


class User(db.Model):
    """Registered account; must be approved by an admin before logging in"""
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')
    status = db.Column(db.String(20), nullable=False, default='pending')
    approved_at = db.Column(db.DateTime)
    approved_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        """Public view of the user, never including the password hash"""
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'status': self.status,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
            'approved_by': self.approved_by,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class ExcelFile(db.Model):
    """Model to store an uploaded workbook's normalized sheets"""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    upload_date = db.Column(db.DateTime, default=datetime.utcnow)
    sheets = db.Column(db.Text)  # JSON string of normalized sheets

    user = db.relationship('User', backref=db.backref('files', lazy=True))

    def set_sheets(self, sheets):
        """Store normalized sheets as JSON"""
        self.sheets = dumps(sheets)

    def get_sheets(self):
        """Retrieve normalized sheets as a list of dictionaries"""
        return loads(self.sheets, default=[])

    def get_sheet(self, sheet_name):
        for sheet in self.get_sheets():
            if sheet.get('sheetName') == sheet_name:
                return sheet
        return None

    def to_dict(self, include_sheets=True):
        result = {
            'id': self.id,
            'fileName': self.file_name,
            'uploadDate': self.upload_date.isoformat() if self.upload_date else None,
            'userId': self.user_id
        }
        if include_sheets:
            result['sheets'] = self.get_sheets()
        return result


class Graph(db.Model):
    """Saved chart configuration built from one sheet of an uploaded file"""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    file_id = db.Column(db.Integer, db.ForeignKey('excel_file.id'), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(10), nullable=False)
    chart_type = db.Column(db.String(20), nullable=False)
    x_axis = db.Column(db.String(255), nullable=False)
    y_axis = db.Column(db.String(255), nullable=False)
    data = db.Column(db.Text, nullable=False)  # JSON
    config = db.Column(db.Text, nullable=False)  # JSON
    sheet_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default='')
    is_public = db.Column(db.Boolean, default=False)
    tags = db.Column(db.Text)  # JSON list
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    file = db.relationship('ExcelFile', backref=db.backref('graphs', lazy=True))

    def set_data(self, data):
        self.data = dumps(data)

    def set_config(self, config):
        self.config = dumps(config)

    def set_tags(self, tags):
        self.tags = dumps(list(tags or []))

    def to_dict(self, include_data=True):
        result = {
            'id': self.id,
            'userId': self.user_id,
            'fileId': self.file_id,
            'title': self.title,
            'type': self.type,
            'chartType': self.chart_type,
            'xAxis': self.x_axis,
            'yAxis': self.y_axis,
            'config': loads(self.config, default={}),
            'sheetName': self.sheet_name,
            'description': self.description or '',
            'isPublic': bool(self.is_public),
            'tags': loads(self.tags, default=[]),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }
        if include_data:
            result['data'] = loads(self.data)
        return result
