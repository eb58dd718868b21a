'''组装 Flask App 的工厂（不启动，不产生行为副作用）
负责注入配置、注册蓝图、注册 error handler，不调用 app.run()
会被 run.py / WSGI 服务器 / 单元测试调用'''
# builddesk/app_factory.py
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
import os
from dotenv import load_dotenv

from builddesk.errors import BuilddeskError, ErrorType
from builddesk.schemas.api_result import ApiResult
from builddesk.presentation.agreement_templates import DEFAULT_COMPANY_NAME
from builddesk.logger import get_logger

# 加载环境变量
load_dotenv()

logger = get_logger(__name__)

# 获取项目根目录（使用绝对路径）
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def default_database_url() -> str:
    db_path = os.path.join(BASE_DIR, 'builddesk.db')
    return f"sqlite:///{db_path}"


def create_app(config_overrides=None):
    """应用工厂函数"""
    app = Flask(__name__)

    # 基础配置
    # 确保 SECRET_KEY 是字符串类型（不是 bytes）
    secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    if isinstance(secret_key, bytes):
        secret_key = secret_key.decode('utf-8')
    app.config['SECRET_KEY'] = secret_key

    # 数据库配置：get_engine() 读取 DATABASE_URL，这里只补默认值
    os.environ.setdefault('DATABASE_URL', default_database_url())
    app.config['DATABASE_URL'] = os.environ['DATABASE_URL']

    app.config['COMPANY_NAME'] = os.getenv('COMPANY_NAME', DEFAULT_COMPANY_NAME)
    app.json.sort_keys = False

    if config_overrides:
        app.config.update(config_overrides)

    # 注册蓝图
    from builddesk.routes.project import project_bp
    from builddesk.routes.estimation import estimation_bp
    from builddesk.routes.catalog import catalog_bp
    from builddesk.routes.agreement import agreement_bp

    app.register_blueprint(project_bp)
    app.register_blueprint(estimation_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(agreement_bp)

    @app.route('/healthz')
    def healthz():
        return jsonify({"ok": True})

    # 注册错误处理
    register_error_handlers(app)

    return app


def _error_response(error_type: ErrorType, message: str, status: int, field=None):
    body = ApiResult(ok=False, error_type=error_type, error_message=message, field=field)
    return jsonify(body.model_dump(mode="json", exclude_none=True)), status


def register_error_handlers(app):
    """注册错误处理器：所有失败都返回 {ok, error_type, error_message}"""
    @app.errorhandler(BuilddeskError)
    def domain_error(error):
        if error.http_status >= 409:
            logger.warning("%s: %s", error.error_type.value, error.message)
        return _error_response(error.error_type, error.message, error.http_status, error.field)

    @app.errorhandler(HTTPException)
    def http_error(error):
        error_type = ErrorType.NOT_FOUND if error.code == 404 else ErrorType.VALIDATION_ERROR
        if error.code >= 500:
            error_type = ErrorType.SYSTEM_ERROR
        return _error_response(error_type, error.description, error.code)

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.exception("Unhandled error: %s", error)
        return _error_response(ErrorType.SYSTEM_ERROR, "Internal server error", 500)
