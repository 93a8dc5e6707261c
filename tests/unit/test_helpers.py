"""Unit tests for helper utilities"""
import logging
import re

import pytest

from featurecraft.models.locale import all_step_prefixes, get_locale
from featurecraft.utils.errors import FileReadError, FileWriteError
from featurecraft.utils.helpers import fill_char, sanitize_filename, template_feature_filename, unique
from featurecraft.utils.logger import setup_logger



def test_fill_char():
    assert fill_char(' ', 3) == '   '
    assert fill_char(' ', 0) == ''
    assert fill_char(' ', -2) == ''


def test_template_feature_filename():
    assert re.fullmatch(r'noname_\d+\.feature', template_feature_filename())


def test_sanitize_filename():
    assert sanitize_filename('a/b:c?') == 'a_b_c_'


def test_unique_keeps_order():
    assert unique(['b', 'a', 'b', 'c', 'a']) == ['b', 'a', 'c']


def test_errors_carry_path_and_reason():
    error = FileWriteError('/tmp/x.feature', 'disk full')

    assert isinstance(error, FileReadError)
    assert error.path == '/tmp/x.feature'
    assert str(error) == 'Could not write /tmp/x.feature: disk full'
    assert str(FileReadError('a.rb', 'gone')) == 'Could not read a.rb: gone'


def test_locales():
    assert get_locale().feature == 'Feature'
    assert get_locale(None).language == 'en'
    assert get_locale('da').scenario == 'Scenarie'
    assert get_locale('da').word_step_keywords() == ['Givet', 'Når', 'Så', 'Og', 'Men']
    assert get_locale().step_keyword_of('And then some') == 'And'
    assert get_locale().step_keyword_of('Andrew is here') is None
    assert 'Givet' in all_step_prefixes() and 'Given' in all_step_prefixes()
    with pytest.raises(ValueError):
        get_locale('xx')


def test_setup_logger_attaches_one_handler(monkeypatch):
    monkeypatch.setenv('FEATURECRAFT_LOG_LEVEL', 'debug')

    logger = setup_logger('featurecraft.test_helpers')
    again = setup_logger('featurecraft.test_helpers')

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
