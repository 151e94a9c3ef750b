# create_admin.py
"""
创建保留管理员 / 示例用户
⚠️ 仅用于开发 / 手动维护
"""
import sys

from investment_tracker.app_factory import create_app
from investment_tracker.db.enums import UserRole


def create_admin(with_samples: bool = False):
    app = create_app()
    user_service = app.users

    admin = user_service.ensure_reserved_admin()
    # 首次运行时种子账号只在内存中，写回存储
    app.persistence.save_users(user_service.users)
    print(f"✅ 管理员账号: {admin.username}")

    if not with_samples:
        return

    users_to_create = [
        {"username": "editor1", "password": "editor1123", "role": UserRole.EDITOR},
        {"username": "viewer1", "password": "viewer1123", "role": UserRole.VIEWER},
    ]

    for u in users_to_create:
        if user_service.get_user_by_username(u["username"]):
            print(f"⚠️ 用户 '{u['username']}' 已存在，跳过创建")
            continue
        user_service.add_user(username=u["username"], password=u["password"], role=u["role"])

    print("✅ 初始管理员 / 用户创建完成")


if __name__ == "__main__":
    create_admin(with_samples="--samples" in sys.argv[1:])
