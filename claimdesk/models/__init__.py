from claimdesk.models.organization import Organization
from claimdesk.models.user import Role, User
