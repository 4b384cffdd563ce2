import logging
import json
import datetime


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for log shippers.
    Customer contact fields are redacted.
    """

    SENSITIVE_KEYS = {
        'customer_phone', 'password', 'token', 'secret', 'authorization',
    }

    CONTEXT_KEYS = ('order_id', 'item_id', 'product_id', 'upload', 'user_id')

    def _scrub(self, data):
        if isinstance(data, dict):
            return {
                k: self._scrub(v) if k.lower() not in self.SENSITIVE_KEYS else '***REDACTED***'
                for k, v in data.items()
            }
        if isinstance(data, list):
            return [self._scrub(i) for i in data]
        return data

    def format(self, record):
        if isinstance(record.msg, dict):
            record.msg = self._scrub(record.msg)
        if isinstance(record.args, dict):
            record.args = self._scrub(record.args)

        log_record = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "lvl": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
            "line": record.lineno,
        }

        # Passed via logger.info(..., extra={"order_id": ...})
        for key in self.CONTEXT_KEYS:
            if hasattr(record, key):
                log_record[key] = str(getattr(record, key))

        if record.exc_info:
            log_record['exc'] = self.formatException(record.exc_info)

        return json.dumps(log_record)
