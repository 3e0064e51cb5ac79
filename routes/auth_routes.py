from flask import Blueprint, request, jsonify, current_app
from functools import wraps
from extensions import db
from models.user import User
import jwt
import datetime

auth_bp = Blueprint("auth", __name__)


def issue_token(user, ttl_hours=None):
    """Sign an HS256 bearer token for ``user``."""
    ttl_hours = ttl_hours or current_app.config.get('TOKEN_TTL_HOURS', 24)
    payload = {
        'user_id': user.id,
        'role': user.role,
        'exp': datetime.datetime.utcnow() + datetime.timedelta(hours=ttl_hours)
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm="HS256")


def extract_token(auth_header):
    """Pull the raw token out of an Authorization header value."""
    if not auth_header:
        return None
    if auth_header.startswith("Bearer "):
        parts = auth_header.split()  # Splits on any whitespace
        if len(parts) < 2:
            return None
        token = parts[1]
        # Handle double 'Bearer' (common Postman mistake)
        if token.lower() == 'bearer' and len(parts) > 2:
            token = parts[2]
    else:
        # Allow token even if 'Bearer' prefix is missing
        token = auth_header.strip()
    # Strip quotes (common copy-paste mistake)
    return token.strip('"').strip("'") or None


def load_principal(token):
    """
    Resolve a bearer token to its User.

    Raises jwt.InvalidTokenError (or a subclass) for bad tokens and LookupError
    when the user no longer exists.
    """
    data = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=["HS256"])
    user = db.session.get(User, data.get('user_id'))
    if user is None:
        raise LookupError("User not found!")
    return user


# Decorator to verify JWT token
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = extract_token(request.headers.get('Authorization'))
        if not token:
            return jsonify({'message': 'Token is missing!'}), 401
        try:
            current_user = load_principal(token)
        except jwt.ExpiredSignatureError:
            return jsonify({'message': 'Token has expired!'}), 401
        except jwt.InvalidTokenError as e:
            return jsonify({'message': 'Token is invalid!', 'error': str(e)}), 401
        except LookupError as e:
            return jsonify({'message': str(e)}), 401
        return f(current_user, *args, **kwargs)
    return decorated


def admin_required(f):
    """Use below @token_required; rejects principals without the admin role."""
    @wraps(f)
    def decorated(current_user, *args, **kwargs):
        if not current_user.is_admin:
            return jsonify({'message': 'Access denied. Admin role required.'}), 403
        return f(current_user, *args, **kwargs)
    return decorated


# ---------------- CURRENT PRINCIPAL ----------------
@auth_bp.route("/me", methods=["GET"])
@token_required
def me(current_user):
    return jsonify(current_user.to_dict()), 200
