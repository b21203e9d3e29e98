import io
import json

import pytest

from payments_service.log import ContextLogger, JsonLogger


def lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestJsonLogger:
    def test_record_shape(self):
        stream = io.StringIO()
        logger = JsonLogger(service_name='payments-service', version='9.9.9',
                            environment='test', stream=stream)
        logger.log('INFO', "hello", payment_id='pay_1')

        (record,) = lines(stream)
        assert record['message'] == "hello"
        assert record['log'] == {'level': 'INFO'}
        assert record['service'] == {'name': 'payments-service', 'version': '9.9.9', 'environment': 'test'}
        assert record['payment_id'] == 'pay_1'
        assert record['@timestamp'].endswith('Z')

    def test_level_threshold(self):
        stream = io.StringIO()
        logger = JsonLogger(level='WARN', stream=stream)
        logger.log('DEBUG', "d")
        logger.log('INFO', "i")
        logger.log('WARN', "w")
        logger.log('ERROR', "e")
        assert [r['message'] for r in lines(stream)] == ["w", "e"]

    def test_warning_alias(self):
        assert JsonLogger(level='warning').level == 'WARN'

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            JsonLogger(level='LOUD')

    def test_exception_includes_stacktrace(self):
        stream = io.StringIO()
        logger = JsonLogger(stream=stream)
        try:
            raise KeyError('missing')
        except KeyError as e:
            logger.log_exception('ERROR', "failed", e)

        (record,) = lines(stream)
        assert record['exception']['type'] == 'KeyError'
        assert 'Traceback' in record['exception']['stacktrace']


class TestContextLogger:
    @pytest.mark.parametrize('method, level', [
        ('debug', 'DEBUG'), ('info', 'INFO'), ('warn', 'WARN'), ('error', 'ERROR'),
    ])
    def test_attaches_baggage_at_every_level(self, method, level):
        stream = io.StringIO()
        log = JsonLogger(level='DEBUG', stream=stream).bind('trace-id=abc123')
        getattr(log, method)("msg", foo='bar')

        (record,) = lines(stream)
        assert record['log']['level'] == level
        assert record['baggage'] == 'trace-id=abc123'
        assert record['foo'] == 'bar'

    def test_explicit_field_wins(self):
        stream = io.StringIO()
        log = ContextLogger(JsonLogger(stream=stream), 'trace-id=abc123')
        log.info("msg", baggage='caller-value')
        assert lines(stream)[0]['baggage'] == 'caller-value'

    def test_field_omitted_without_baggage(self):
        stream = io.StringIO()
        log = JsonLogger(stream=stream).bind('')
        log.info("msg")
        assert 'baggage' not in lines(stream)[0]

    def test_exception_carries_baggage(self):
        stream = io.StringIO()
        log = JsonLogger(stream=stream).bind('trace-id=abc123')
        log.exception("boom", RuntimeError("bad"), payment_id='pay_1')

        (record,) = lines(stream)
        assert record['log']['level'] == 'ERROR'
        assert record['baggage'] == 'trace-id=abc123'
        assert record['exception']['message'] == 'bad'
