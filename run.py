# run.py
"""
run.py
标准 Flask 服务启动脚本（给开发者 / 运维 / CLI 用）
仅用于本地 / 内网启动；生产环境用 WSGI 服务器加载 builddesk.app_factory:create_app
"""
import os
from builddesk.app_factory import create_app
from builddesk.db.auto_init import auto_init


def main():
    # 1️创建 Flask app（同时补齐 DATABASE_URL 默认值）
    app = create_app()

    # 2️启动前初始化数据库
    auto_init(company_name=app.config["COMPANY_NAME"])

    print("DB URI:", app.config["DATABASE_URL"])

    # 3️启动参数
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG", "0").lower() in ("1", "true", "yes")

    # 4️启动服务
    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
