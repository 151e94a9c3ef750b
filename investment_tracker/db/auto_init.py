"""
存储自动初始化检查模块
在启动时检查 store_entries 表与保留管理员账号，缺失则自动补齐
"""
from typing import Optional

from sqlalchemy import inspect

from investment_tracker.db.session import get_engine
from investment_tracker.db.init_db import init_db
from investment_tracker.db.store import SqlAlchemyStore
from investment_tracker.db.enums import RESERVED_ADMIN_USERNAME
from investment_tracker.services.persistence_service import PersistenceService
from investment_tracker.services.user_service import UserService
from investment_tracker.logger import get_logger

logger = get_logger(__name__)


def check_tables_exist(db_url: Optional[str] = None) -> bool:
    """检查 store_entries 表是否存在"""
    try:
        return "store_entries" in inspect(get_engine(db_url)).get_table_names()
    except Exception as e:
        logger.warning(f"⚠️ 检查数据库表失败: {e}")
        return False


def ensure_admin_user(db_url: Optional[str] = None, hash_passwords: bool = False) -> None:
    """确保保留管理员账号存在"""
    store = SqlAlchemyStore(db_url)
    persistence = PersistenceService(store)
    user_service = UserService(persistence, hash_passwords=hash_passwords)
    if store.get(persistence.users_key) is None:
        # 首次启动：把种子账号写入存储
        persistence.save_users(user_service.users)
    elif user_service.get_user_by_username(RESERVED_ADMIN_USERNAME):
        logger.info("ℹ️  管理员用户已存在，跳过创建")
        return
    user_service.ensure_reserved_admin()
    logger.info(f"✅ 管理员用户创建成功! 账号: {RESERVED_ADMIN_USERNAME}")


def auto_init(db_url: Optional[str] = None, hash_passwords: bool = False) -> None:
    """
    自动初始化检查
    如果数据库未初始化或缺少管理员用户，自动执行初始化
    """
    logger.info("🔍 检查存储初始化状态...")

    if not check_tables_exist(db_url):
        logger.info("📦 数据库表不存在，正在创建...")
        init_db(db_url)
        logger.info("✅ 数据库表创建成功")
    else:
        logger.info("✅ 数据库表已存在")

    ensure_admin_user(db_url, hash_passwords)
    logger.info("🎉 存储初始化检查完成")
