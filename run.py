# run.py
"""
run.py
命令行启动脚本（给开发者 / 运维用）
summary / list / import / export / users 五个子命令，全部走 create_app() 装配的 service
"""
import argparse
import os
import sys

from investment_tracker.app_factory import TrackerConfig, create_app
from investment_tracker.db.auto_init import auto_init
from investment_tracker.db.enums import SortKey, SortOrder, ALL_STAGES_FILTER, ALL_SECTORS_FILTER
from investment_tracker.services.access_control import Action, require
from investment_tracker.services.csv_export_service import (
    SUFFIX_ALL,
    export_filename,
    to_csv,
    to_excel_bytes,
)
from investment_tracker.services.pdf_report_service import pdf_filename, render_projects_pdf
from investment_tracker.services.summary_service import summarize
from investment_tracker.services.view_service import SortState, ViewCriteria, view


def get_app_base_dir():
    """
    获取程序根目录
    - 开发态：run.py 所在目录
    - PyInstaller：exe 所在目录
    """
    if getattr(sys, "frozen", False):
        return os.path.dirname(sys.executable)
    return os.path.abspath(os.path.dirname(__file__))


def configure_database():
    """
    未显式配置 DATABASE_URL 时，使用程序根目录下的 tracker_store.db
    """
    if os.getenv("DATABASE_URL"):
        return
    db_path = os.path.join(get_app_base_dir(), "tracker_store.db")
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"


def _money(value) -> str:
    return f"${value:,.0f}"


# ======================================================
# 🧾 Commands
# ======================================================

def cmd_summary(app, args):
    stats = summarize(app.projects.projects, app.config.featured_summary_limit)
    print(f"Projects:      {stats.count}")
    print(f"Total worth:   {_money(stats.total_worth)}")
    print(f"Jobs:          {stats.total_jobs:,}")
    print("Pipeline:")
    percentages = stats.stage_percentages()
    for stage, count in stats.stage_counts.items():
        print(f"  {stage.value:<15} {count:>4}  ({percentages[stage]:.0f}%)")
    print("Top sectors:")
    for sector, total in stats.top_sectors(3):
        print(f"  {sector:<20} {total.count:>4}  {_money(total.total_worth)}")
    print("Recently updated:")
    for project in stats.featured:
        print(f"  {project.project_name} ({project.updated_at})")


def cmd_list(app, args):
    sort = SortState(SortKey(args.sort), SortOrder(args.order)) if args.sort else SortState()
    criteria = ViewCriteria(
        stage_filter=args.stage or ALL_STAGES_FILTER,
        sector_filter=args.sector or ALL_SECTORS_FILTER,
        search_term=args.search or "",
        sort=sort,
    )
    rows = view(app.projects.projects, criteria)
    for p in rows:
        print(
            f"{p.id}  {p.project_name:<30} {p.project_stage.value:<14} "
            f"{p.project_sector:<18} {p.project_location.value:<15} {_money(p.investment_worth):>15}"
        )
    print(f"{len(rows)} of {len(app.projects.projects)} projects")


def cmd_import(app, args):
    user = app.users.authenticate(username=args.user, password=args.password)
    require(user.role, Action.CREATE)
    if args.file.lower().endswith(".xlsx"):
        result = app.projects.import_excel(source=args.file, actor=user.username)
    else:
        with open(args.file, "r", encoding="utf-8-sig") as fh:
            result = app.projects.import_csv(text=fh.read(), actor=user.username)
    print(result.summary())
    for error in result.errors:
        print(f"  {error}")


def cmd_export(app, args):
    user = app.users.authenticate(username=args.user, password=args.password)
    require(user.role, Action.EXPORT)
    projects = app.projects.list_projects()
    if not projects:
        print("Nothing to export")
        return
    prefix = app.config.export_prefix
    if args.format == "csv":
        name = export_filename(SUFFIX_ALL, prefix)
        payload = to_csv(projects).encode("utf-8")
    elif args.format == "xlsx":
        name = export_filename(SUFFIX_ALL, prefix, extension="xlsx")
        payload = to_excel_bytes(projects)
    else:
        name = pdf_filename(prefix)
        payload = render_projects_pdf(projects)

    path = os.path.join(args.out, name)
    with open(path, "wb") as fh:
        fh.write(payload)
    print(f"Exported {len(projects)} projects to {path}")


def cmd_users(app, args):
    for user in app.users.list_users():
        print(f"{user.id}  {user.username:<20} {user.role.value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Investment project tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="portfolio statistics").set_defaults(func=cmd_summary)

    p_list = sub.add_parser("list", help="filtered / sorted project table")
    p_list.add_argument("--stage")
    p_list.add_argument("--sector")
    p_list.add_argument("--search")
    p_list.add_argument("--sort", choices=[k.value for k in SortKey])
    p_list.add_argument("--order", choices=[SortOrder.ASC.value, SortOrder.DESC.value], default="asc")
    p_list.set_defaults(func=cmd_list)

    p_import = sub.add_parser("import", help="import projects from CSV or XLSX")
    p_import.add_argument("file")
    p_import.add_argument("--user", required=True)
    p_import.add_argument("--password", required=True)
    p_import.set_defaults(func=cmd_import)

    p_export = sub.add_parser("export", help="export every project (admin / editor account required)")
    p_export.add_argument("format", choices=["csv", "xlsx", "pdf"])
    p_export.add_argument("--out", default=".")
    p_export.add_argument("--user", required=True)
    p_export.add_argument("--password", required=True)
    p_export.set_defaults(func=cmd_export)

    sub.add_parser("users", help="list user accounts").set_defaults(func=cmd_users)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    # 0️统一数据库路径
    configure_database()

    # 1️启动前初始化存储
    config = TrackerConfig.from_env()
    auto_init(config.database_url, config.hash_passwords)

    # 2️装配 service
    app = create_app(config)

    try:
        args.func(app, args)
    except (ValueError, PermissionError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
