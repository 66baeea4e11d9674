from auth.security import verify_admin_password, create_access_token, decode_token
from auth.dependencies import require_admin
