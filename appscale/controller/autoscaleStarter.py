import logging
import signal
import threading

from appscale.config.autoscaleConfig import AutoscaleConfig
from appscale.config.uriConfig import URIConfig
from appscale.controller.autoscaleController import AutoscaleController


def setup_logging(level_name=AutoscaleConfig.LOG_LEVEL):
    """LOG_LEVEL=debug 时输出 DEBUG 日志并带上代码位置"""
    if level_name.lower() == "debug":
        logging.basicConfig(level=logging.DEBUG, format=AutoscaleConfig.DEBUG_LOG_FORMAT)
    else:
        logging.basicConfig(level=logging.INFO, format=AutoscaleConfig.LOG_FORMAT)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger(__name__).info("log level is %s", level_name)


def sigterm_event():
    """收到 SIGINT / SIGTERM 时置位的事件"""
    term = threading.Event()

    def handler(signum, frame):
        logging.getLogger(__name__).info("Received signal %s", signum)
        term.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)
    return term


def main():
    """启动自动扩缩容控制器"""
    setup_logging()
    logger = logging.getLogger(__name__)
    term = sigterm_event()

    controller = AutoscaleController(URIConfig())
    controller.start()

    # 保持程序运行
    term.wait()
    logger.info("Stopping autoscale controller...")
    controller.stop()
    logger.info("Autoscale controller stopped")


if __name__ == "__main__":
    main()
