import logging
import time
from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from flask import request, jsonify

from models import db, User, ExcelFile, Graph, GRAPH_TYPES, CHART_TYPES
from parsers.file_parser import FileParserFactory
from analyzers.column_analyzer import ColumnAnalyzer
from utils.auth import admin_required, current_user_id, issue_token, login_required
from utils.serialization import make_json_serializable

MIN_PASSWORD_LENGTH = 6
GRAPH_REQUIRED_FIELDS = ['title', 'type', 'data', 'config', 'sheetName', 'fileId', 'xAxis', 'yAxis']
GRAPH_OBJECT_FIELDS = ('data', 'config')

STARTED_AT = time.monotonic()


def error_response(message, status, **extra):
    """Build the JSON error envelope used by every API route"""
    body = {'status': 'error', 'message': message}
    body.update(extra)
    return jsonify(body), status


def register_routes(app):
    """Register all routes with the Flask app"""
    file_parser = FileParserFactory()
    column_analyzer = ColumnAnalyzer()

    @app.route('/health')
    def health():
        """Report service and database status"""
        try:
            db.session.execute(db.text('SELECT 1'))
            database_state = 'connected'
        except Exception as e:
            logging.error(f"Health check database error: {str(e)}")
            database_state = 'disconnected'

        return jsonify({
            'status': 'ok',
            'timestamp': datetime.utcnow().isoformat(),
            'database': {
                'state': database_state,
                'backend': db.engine.url.get_backend_name()
            },
            'uptime': time.monotonic() - STARTED_AT
        })

    # =======================
    # AUTH ROUTES
    # =======================
    @app.route('/api/auth/register', methods=['POST'])
    def api_register():
        """Create a pending user account"""
        payload = _json_body()
        email = (payload.get('email') or '').strip().lower()
        password = payload.get('password') or ''
        name = (payload.get('name') or '').strip()

        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            return error_response('Invalid email format. Please enter a valid email address.', 400)

        if User.query.filter_by(email=email).first():
            logging.info(f"Registration rejected, user already exists: {email}")
            return error_response('User already exists', 400)

        if len(password) < MIN_PASSWORD_LENGTH:
            return error_response(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long', 400)

        if not name:
            return error_response('Name is required', 400)

        try:
            user = User(email=email, name=name, status='pending')
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Registration error: {str(e)}")
            return error_response('Server error during registration', 500, error=str(e))

        logging.info(f"User registered: {email}")
        return jsonify({
            'status': 'success',
            'message': 'User created successfully. Your account is pending admin approval.',
            'email': user.email
        }), 201

    @app.route('/api/auth/login', methods=['POST'])
    def api_login():
        """Exchange email and password for a bearer token"""
        payload = _json_body()
        email = (payload.get('email') or '').strip().lower()
        password = payload.get('password') or ''

        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password):
            logging.info(f"Failed login for {email}")
            return error_response('Invalid credentials. Please check your email and password.', 401)

        if user.status != 'approved':
            return error_response('Account pending approval. Please wait for admin approval.', 403)

        logging.info(f"Login successful for {email}")
        return jsonify({
            'status': 'success',
            'token': issue_token(user),
            'user': user.to_dict()
        })

    @app.route('/api/auth/me')
    @login_required
    def api_me():
        """Return the current user"""
        user = db.session.get(User, current_user_id())
        return jsonify({'status': 'success', 'user': user.to_dict()})

    @app.route('/api/auth/users')
    @admin_required
    def api_list_users():
        """List all users, newest first"""
        users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
        return jsonify({'status': 'success', 'users': [u.to_dict() for u in users]})

    @app.route('/api/auth/pending-users')
    @admin_required
    def api_list_pending_users():
        """List users awaiting approval, newest first"""
        users = User.query.filter_by(status='pending') \
            .order_by(User.created_at.desc(), User.id.desc()).all()
        return jsonify({'status': 'success', 'users': [u.to_dict() for u in users]})

    @app.route('/api/auth/approve-user/<int:user_id>', methods=['POST'])
    @admin_required
    def api_approve_user(user_id):
        """Approve a pending user"""
        user = db.session.get(User, user_id)
        if not user:
            return error_response('User not found', 404)

        user.status = 'approved'
        user.approved_at = datetime.utcnow()
        user.approved_by = current_user_id()
        db.session.commit()

        logging.info(f"User {user.email} approved by {current_user_id()}")
        return jsonify({'status': 'success', 'message': 'User approved successfully'})

    @app.route('/api/auth/reject-user/<int:user_id>', methods=['POST'])
    @admin_required
    def api_reject_user(user_id):
        """Reject a pending user"""
        user = db.session.get(User, user_id)
        if not user:
            return error_response('User not found', 404)

        user.status = 'rejected'
        db.session.commit()

        logging.info(f"User {user.email} rejected by {current_user_id()}")
        return jsonify({'status': 'success', 'message': 'User rejected successfully'})

    @app.route('/api/auth/users/<int:user_id>', methods=['DELETE'])
    @admin_required
    def api_delete_user(user_id):
        """Delete a non-admin user together with their files and graphs"""
        user = db.session.get(User, user_id)
        if not user:
            return error_response('User not found', 404)

        if user.is_admin:
            return error_response('Cannot delete admin users', 403)

        try:
            Graph.query.filter_by(user_id=user.id).delete()
            ExcelFile.query.filter_by(user_id=user.id).delete()
            db.session.delete(user)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Delete user error: {str(e)}")
            return error_response('Delete failed', 500, error=str(e))

        return jsonify({'status': 'success', 'message': 'User deleted successfully'})

    # =======================
    # SPREADSHEET ROUTES
    # =======================
    @app.route('/api/excel/upload', methods=['POST'])
    @login_required
    def api_upload_excel():
        """Upload, parse and store a spreadsheet"""
        file = request.files.get('file')
        if not file or file.filename == '':
            return error_response('No file uploaded', 400)

        try:
            parser = file_parser.get_parser_for_mimetype(file.mimetype)
        except ValueError:
            return error_response('Only Excel files are allowed!', 400)

        try:
            result = parser.parse(file.read())

            if not result['success']:
                return error_response('Error processing file', 400, error=result['error'])

            excel_file = ExcelFile(user_id=current_user_id(), file_name=file.filename)
            excel_file.set_sheets(result['data'])
            db.session.add(excel_file)
            db.session.commit()

            analyses = [column_analyzer.analyze_sheet(sheet) for sheet in result['data']]

            logging.info(f"Stored {file.filename} with {result['totalSheets']} sheets for user {current_user_id()}")
            return jsonify(make_json_serializable({
                'status': 'success',
                'id': excel_file.id,
                'fileName': excel_file.file_name,
                'uploadDate': excel_file.upload_date,
                'userId': excel_file.user_id,
                'sheets': result['data'],
                'validations': [{'sheetName': a['sheetName'], **a['validation']} for a in analyses],
                'statistics': [{'sheetName': a['sheetName'], 'columns': a['columns']} for a in analyses],
                'totalSheets': result['totalSheets']
            }))

        except Exception as e:
            db.session.rollback()
            logging.error(f"Upload error: {str(e)}")
            return error_response('Error processing file', 500, error=str(e))

    @app.route('/api/excel/files')
    @login_required
    def api_list_files():
        """List the current user's files, newest first"""
        files = ExcelFile.query.filter_by(user_id=current_user_id()) \
            .order_by(ExcelFile.upload_date.desc(), ExcelFile.id.desc()).all()
        return jsonify({'status': 'success', 'files': [f.to_dict() for f in files]})

    @app.route('/api/excel/files/<int:file_id>')
    @login_required
    def api_get_file(file_id):
        """Get one of the current user's files"""
        excel_file = _get_owned_file(file_id)
        if not excel_file:
            return error_response('File not found', 404)

        return jsonify({'status': 'success', 'file': excel_file.to_dict()})

    @app.route('/api/excel/files/<int:file_id>', methods=['DELETE'])
    @login_required
    def api_delete_file(file_id):
        """Delete a file and every graph built from it"""
        excel_file = _get_owned_file(file_id)
        if not excel_file:
            return error_response('File not found', 404)

        try:
            Graph.query.filter_by(file_id=excel_file.id).delete()
            db.session.delete(excel_file)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Delete file error: {str(e)}")
            return error_response('Delete failed', 500, error=str(e))

        return jsonify({'status': 'success', 'message': 'File and associated graphs deleted successfully'})

    @app.route('/api/excel/files/<int:file_id>/statistics')
    @login_required
    def api_file_statistics(file_id):
        """Recompute validation and column statistics from stored rows"""
        excel_file = _get_owned_file(file_id)
        if not excel_file:
            return error_response('File not found', 404)

        sheets = excel_file.get_sheets()
        sheet_name = request.args.get('sheet')
        if sheet_name is not None:
            sheets = [s for s in sheets if s.get('sheetName') == sheet_name]
            if not sheets:
                return error_response('Sheet not found in Excel file', 404)

        return jsonify(make_json_serializable({
            'status': 'success',
            'fileId': excel_file.id,
            'sheets': [column_analyzer.analyze_sheet(sheet) for sheet in sheets]
        }))

    # =======================
    # GRAPH ROUTES
    # =======================
    @app.route('/api/excel/save-graph', methods=['POST'])
    @login_required
    def api_save_graph():
        """Save a chart configuration for a sheet of an owned file"""
        payload = _json_body()

        missing = []
        for field in GRAPH_REQUIRED_FIELDS:
            value = payload.get(field)
            # Empty data or config objects are allowed
            if field in GRAPH_OBJECT_FIELDS:
                absent = value is None
            else:
                absent = not value
            if absent:
                missing.append(field)
        if missing:
            logging.info(f"Save graph rejected, missing fields: {missing}")
            return error_response('Missing required fields', 400,
                                  required=GRAPH_REQUIRED_FIELDS, missing=missing)

        if payload['type'] not in GRAPH_TYPES:
            return error_response(f"Invalid graph type: {payload['type']}", 400)

        chart_type = payload.get('chartType') or 'bar'
        if chart_type not in CHART_TYPES:
            return error_response(f"Invalid chart type: {chart_type}", 400)

        try:
            file_id = int(payload['fileId'])
        except (TypeError, ValueError):
            return error_response('Associated Excel file not found or not owned by user.', 400)

        excel_file = _get_owned_file(file_id)
        if not excel_file:
            return error_response('Associated Excel file not found or not owned by user.', 400)

        try:
            graph = Graph(
                user_id=current_user_id(),
                file_id=excel_file.id,
                title=payload['title'],
                type=payload['type'],
                chart_type=chart_type,
                x_axis=payload['xAxis'],
                y_axis=payload['yAxis'],
                sheet_name=payload['sheetName'],
                description=payload.get('description') or '',
                is_public=bool(payload.get('isPublic', False))
            )
            graph.set_data(payload['data'])
            graph.set_config(payload['config'])
            graph.set_tags(payload.get('tags'))
            db.session.add(graph)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.error(f"Error saving graph: {str(e)}")
            return error_response('Error saving graph', 500, error=str(e))

        logging.info(f"Graph {graph.id} saved for file {excel_file.id}")
        return jsonify({'status': 'success', 'graph': graph.to_dict()}), 201

    @app.route('/api/excel/graphs')
    @login_required
    def api_list_graphs():
        """List the current user's graphs without their data"""
        graphs = Graph.query.filter_by(user_id=current_user_id()) \
            .order_by(Graph.created_at.desc(), Graph.id.desc()).all()

        results = []
        for graph in graphs:
            item = graph.to_dict(include_data=False)
            item['fileName'] = graph.file.file_name if graph.file else None
            results.append(item)

        return jsonify({'status': 'success', 'graphs': results})

    @app.route('/api/excel/graphs/<int:graph_id>')
    @login_required
    def api_get_graph(graph_id):
        """Get a graph with the current rows of the sheet it was built from"""
        graph = Graph.query.filter_by(id=graph_id, user_id=current_user_id()).first()
        if not graph:
            return error_response('Graph not found', 404)

        excel_file = db.session.get(ExcelFile, graph.file_id)
        if not excel_file:
            return error_response('Associated Excel file not found', 404)

        sheet = excel_file.get_sheet(graph.sheet_name)
        if not sheet:
            return error_response('Sheet not found in Excel file', 404)

        result = graph.to_dict(include_data=False)
        result['data'] = sheet.get('data', [])
        result['fileName'] = excel_file.file_name

        return jsonify({'status': 'success', 'graph': result})

    @app.route('/api/excel/graphs/<int:graph_id>', methods=['DELETE'])
    @login_required
    def api_delete_graph(graph_id):
        """Delete one of the current user's graphs"""
        graph = Graph.query.filter_by(id=graph_id, user_id=current_user_id()).first()
        if not graph:
            return error_response('Graph not found', 404)

        db.session.delete(graph)
        db.session.commit()

        return jsonify({'status': 'success', 'message': 'Graph deleted successfully'})


def _get_owned_file(file_id):
    return ExcelFile.query.filter_by(id=file_id, user_id=current_user_id()).first()


def _json_body():
    """Return the request's JSON object, or an empty dict for anything else"""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}
