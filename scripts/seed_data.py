import sys
import os

# Add the parent directory to the path so we can import our services
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.errors import ConflictError
from app.core.rbac import Role
from app.db.firestore import get_db
from app.services.identity import IdentityAdmin
from app.services.staff import StaffService


def seed_platform(admin_uid: str, full_name: str, phone_number: str = None):
    print("🌱 Starting Akshayapatra Platform Seeding...")

    # 1. Staff profile for the first Super Admin
    # Note: The uid must match an existing Firebase Auth account
    staff = StaffService(get_db())
    try:
        staff.create_staff_profile(admin_uid, full_name, phone_number, Role.SUPER_ADMIN)
        print(f"✅ Super Admin staff profile created: {full_name}")
    except ConflictError:
        staff.update_staff_role(admin_uid, Role.SUPER_ADMIN)
        staff.set_staff_active(admin_uid, True, None)
        print(f"✅ Existing staff profile promoted to superadmin: {admin_uid}")

    # 2. Custom claim checked by super-admin-only routes
    IdentityAdmin().set_super_admin_claim(admin_uid, True)
    print("✅ isSuperAdmin claim set (takes effect on the next token refresh)")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python scripts/seed_data.py <firebase-uid> <full name> [phone]")
        sys.exit(1)
    seed_platform(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else None)
