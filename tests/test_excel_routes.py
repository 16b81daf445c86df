"""Tests for uploading workbooks, stored files, statistics and graphs."""
import io
from datetime import datetime

import pytest

from conftest import XLSX_MIMETYPE, auth_header, make_xlsx


def upload(client, token, content, filename='sales.xlsx', mimetype=XLSX_MIMETYPE):
    return client.post(
        '/api/excel/upload',
        data={'file': (io.BytesIO(content), filename, mimetype)},
        headers=auth_header(token),
        content_type='multipart/form-data',
    )


@pytest.fixture()
def uploaded(client, user_token, sales_xlsx):
    response = upload(client, user_token, sales_xlsx)
    assert response.status_code == 200, response.get_json()
    return response.get_json()


def graph_payload(file_id, **overrides):
    payload = {
        'title': 'Units by region',
        'type': '2d',
        'chartType': 'bar',
        'data': {'labels': ['North', 'South']},
        'config': {'color': 'blue'},
        'sheetName': 'Sales',
        'fileId': file_id,
        'xAxis': 'Region',
        'yAxis': 'Units',
    }
    payload.update(overrides)
    return payload


def test_upload_returns_sheets_validations_and_statistics(uploaded):
    assert uploaded['status'] == 'success'
    assert uploaded['fileName'] == 'sales.xlsx'
    assert uploaded['totalSheets'] == 2
    assert [s['sheetName'] for s in uploaded['sheets']] == ['Sales', 'Notes']

    sales = uploaded['sheets'][0]
    assert sales['headers'] == ['Region', 'Units', 'Price']
    assert sales['columnTypes'] == {'Region': 'string', 'Units': 'number', 'Price': 'number'}
    assert sales['rowCount'] == 3 and sales['columnCount'] == 3

    assert uploaded['validations'][0] == {
        'sheetName': 'Sales', 'hasData': True, 'hasHeaders': True, 'isConsistent': True
    }

    columns = uploaded['statistics'][0]['columns']
    assert columns['Units'] == {'min': 10, 'max': 30, 'average': 20, 'sum': 60, 'count': 3}
    assert columns['Region']['type'] == 'categorical'
    assert sorted(columns['Region']['uniqueValues']) == ['North', 'South']


def test_upload_requires_authentication(client, sales_xlsx):
    response = client.post(
        '/api/excel/upload',
        data={'file': (io.BytesIO(sales_xlsx), 'sales.xlsx', XLSX_MIMETYPE)},
        content_type='multipart/form-data',
    )

    assert response.status_code == 401


def test_upload_without_file(client, user_token):
    response = client.post('/api/excel/upload', data={}, headers=auth_header(user_token),
                           content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['message'] == 'No file uploaded'


def test_upload_rejects_other_mimetypes(client, user_token):
    response = upload(client, user_token, b'a,b\n1,2\n', filename='data.csv', mimetype='text/csv')

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Only Excel files are allowed!'


def test_upload_corrupt_workbook_reports_parser_error(client, user_token):
    response = upload(client, user_token, b'definitely not a workbook')

    body = response.get_json()
    assert response.status_code == 400
    assert body['message'] == 'Error processing file'
    assert body['error']


def test_upload_too_large(app, client, user_token):
    app.config['MAX_CONTENT_LENGTH'] = 1024

    response = upload(client, user_token, b'x' * 4096)

    assert response.status_code == 413


def test_upload_serializes_dates(client, user_token):
    content = make_xlsx([('Events', [['when', 'what'], [datetime(2024, 5, 1), 'launch']])])

    body = upload(client, user_token, content).get_json()

    assert body['sheets'][0]['data'][0]['when'] == '2024-05-01T00:00:00'
    assert body['sheets'][0]['columnTypes']['when'] == 'date'


def test_list_and_get_files(client, user_token, uploaded):
    files = client.get('/api/excel/files', headers=auth_header(user_token)).get_json()['files']
    assert [f['id'] for f in files] == [uploaded['id']]

    response = client.get(f"/api/excel/files/{uploaded['id']}", headers=auth_header(user_token))
    stored = response.get_json()['file']
    assert stored['fileName'] == 'sales.xlsx'
    assert stored['sheets'] == uploaded['sheets']


def test_files_are_private_to_their_owner(client, uploaded, create_user, login):
    create_user('other@example.com')
    other_token = login('other@example.com')

    response = client.get(f"/api/excel/files/{uploaded['id']}", headers=auth_header(other_token))
    files = client.get('/api/excel/files', headers=auth_header(other_token)).get_json()['files']

    assert response.status_code == 404
    assert files == []


def test_statistics_recomputed_from_stored_rows(client, user_token, uploaded):
    response = client.get(f"/api/excel/files/{uploaded['id']}/statistics",
                          headers=auth_header(user_token))

    body = response.get_json()
    assert response.status_code == 200
    assert [s['sheetName'] for s in body['sheets']] == ['Sales', 'Notes']
    assert body['sheets'][0]['columns'] == uploaded['statistics'][0]['columns']


def test_statistics_for_one_sheet(client, user_token, uploaded):
    url = f"/api/excel/files/{uploaded['id']}/statistics"

    found = client.get(url, query_string={'sheet': 'Notes'}, headers=auth_header(user_token))
    missing = client.get(url, query_string={'sheet': 'Nope'}, headers=auth_header(user_token))

    assert [s['sheetName'] for s in found.get_json()['sheets']] == ['Notes']
    assert missing.status_code == 404


def test_save_and_fetch_graph(client, user_token, uploaded):
    response = client.post('/api/excel/save-graph', json=graph_payload(uploaded['id']),
                           headers=auth_header(user_token))
    assert response.status_code == 201
    graph = response.get_json()['graph']
    assert graph['chartType'] == 'bar'
    assert graph['data'] == {'labels': ['North', 'South']}

    listed = client.get('/api/excel/graphs', headers=auth_header(user_token)).get_json()['graphs']
    assert len(listed) == 1
    assert listed[0]['fileName'] == 'sales.xlsx'
    assert 'data' not in listed[0]

    fetched = client.get(f"/api/excel/graphs/{graph['id']}", headers=auth_header(user_token)).get_json()['graph']
    assert fetched['data'] == uploaded['sheets'][0]['data']
    assert fetched['fileName'] == 'sales.xlsx'


def test_save_graph_validation(client, user_token, uploaded):
    cases = [
        graph_payload(uploaded['id'], title=''),
        graph_payload(uploaded['id'], type='4d'),
        graph_payload(uploaded['id'], chartType='donut'),
        graph_payload(9999),
        graph_payload('abc'),
    ]
    for payload in cases:
        response = client.post('/api/excel/save-graph', json=payload, headers=auth_header(user_token))
        assert response.status_code == 400, payload


def test_save_graph_accepts_empty_data_and_config(client, user_token, uploaded):
    response = client.post('/api/excel/save-graph', json=graph_payload(uploaded['id'], data={}, config={}),
                           headers=auth_header(user_token))

    assert response.status_code == 201
    graph = response.get_json()['graph']
    assert graph['data'] == {}
    assert graph['config'] == {}


def test_save_graph_requires_data_and_config_keys(client, user_token, uploaded):
    payload = graph_payload(uploaded['id'])
    del payload['config']

    response = client.post('/api/excel/save-graph', json=payload, headers=auth_header(user_token))

    assert response.status_code == 400
    assert response.get_json()['missing'] == ['config']


def test_save_graph_with_non_object_body(client, user_token):
    response = client.post('/api/excel/save-graph', json=['not', 'an', 'object'],
                           headers=auth_header(user_token))

    assert response.status_code == 400
    assert response.get_json()['status'] == 'error'


def test_graph_with_missing_sheet(client, user_token, uploaded):
    response = client.post('/api/excel/save-graph', json=graph_payload(uploaded['id'], sheetName='Gone'),
                           headers=auth_header(user_token))
    graph_id = response.get_json()['graph']['id']

    fetched = client.get(f'/api/excel/graphs/{graph_id}', headers=auth_header(user_token))

    assert fetched.status_code == 404


def test_delete_graph(client, user_token, uploaded):
    graph_id = client.post('/api/excel/save-graph', json=graph_payload(uploaded['id']),
                           headers=auth_header(user_token)).get_json()['graph']['id']

    assert client.delete(f'/api/excel/graphs/{graph_id}', headers=auth_header(user_token)).status_code == 200
    assert client.get(f'/api/excel/graphs/{graph_id}', headers=auth_header(user_token)).status_code == 404


def test_delete_file_removes_its_graphs(client, user_token, uploaded):
    client.post('/api/excel/save-graph', json=graph_payload(uploaded['id']), headers=auth_header(user_token))

    response = client.delete(f"/api/excel/files/{uploaded['id']}", headers=auth_header(user_token))

    assert response.status_code == 200
    assert client.get('/api/excel/graphs', headers=auth_header(user_token)).get_json()['graphs'] == []
    assert client.get(f"/api/excel/files/{uploaded['id']}", headers=auth_header(user_token)).status_code == 404


def test_health(client):
    body = client.get('/health').get_json()

    assert body['status'] == 'ok'
    assert body['database']['state'] == 'connected'
