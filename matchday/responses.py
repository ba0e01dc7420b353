import math

from flask import jsonify


def success_response(data=None, message=None, status=200):
    payload = {'success': True}
    if message:
        payload['message'] = message
    if data is not None:
        payload['data'] = data
    return jsonify(payload), status


def paginated_response(items, page, limit, total):
    return jsonify({
        'success': True,
        'data': items,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit) if limit else 0,
        },
    })
