"""版本信息"""

__version__ = "0.3.0"
__author__ = "twofactor contributors"
__description__ = "独立的二次验证（两步登录）挑战协议库"
