import logging
import os

from SolverConfig import load_config


def setup_logger(name, log_file=None, level=None):
    """
    Set up a logger with consistent formatting and handlers.
    
    Args:
        name (str): Logger name
        log_file (str, optional): Path to log file. If None, uses <log directory>/<name>.log
        level (int, optional): Logging level. If None, the level configured under
            "logging" in config.json is used
        
    Returns:
        logging.Logger: Configured logger instance
    """
    settings = load_config()["logging"]
    directory = settings["directory"]
    if level is None:
        level = getattr(logging, str(settings["level"]).upper(), logging.DEBUG)

    # Create logs directory if it doesn't exist
    os.makedirs(directory, exist_ok=True)
    
    if log_file is None:
        log_file = os.path.join(directory, f"{name}.log")
    
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    # Remove any existing handlers to prevent duplicates
    if logger.hasHandlers():
        logger.handlers.clear()
    
    file_handler = logging.FileHandler(log_file, mode='w')
    file_handler.setLevel(level)
    
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)
    
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    
    return logger
