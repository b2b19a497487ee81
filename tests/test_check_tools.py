"""
Tests for the external tool check / installer.
"""

import subprocess
from unittest.mock import patch, call

import pytest

import check_tools


class TestPackageName:
    """Test tool -> package mapping."""

    def test_munpack_comes_from_mpack(self):
        """Test munpack maps to its package."""
        assert check_tools.package_name('munpack') == 'mpack'

    def test_unmapped_tool_is_its_own_package(self):
        """Test tools without a mapping keep their name."""
        assert check_tools.package_name('pandoc') == 'pandoc'


class TestIsAvailable:
    """Test PATH lookup."""

    def test_found_on_path(self):
        with patch('check_tools.shutil.which', return_value='/usr/bin/pandoc'):
            assert check_tools.is_available('pandoc') is True

    def test_not_found_on_path(self):
        with patch('check_tools.shutil.which', return_value=None):
            assert check_tools.is_available('pandoc') is False


class TestInstallPackage:
    """Test apt-get invocation."""

    def test_runs_update_then_install_as_root(self):
        """Test no sudo prefix when already root."""
        with patch('check_tools.os.geteuid', return_value=0), \
             patch('check_tools.subprocess.run') as mock_run:
            check_tools.install_package('ripmime')

        assert mock_run.call_args_list == [
            call(['apt-get', 'update', '-qq'], check=True),
            call(['apt-get', 'install', '-y', 'ripmime'], check=True),
        ]

    def test_uses_sudo_when_not_root(self):
        """Test sudo prefix for regular users."""
        with patch('check_tools.os.geteuid', return_value=1000), \
             patch('check_tools.shutil.which', return_value='/usr/bin/sudo'), \
             patch('check_tools.subprocess.run') as mock_run:
            check_tools.install_package('pandoc')

        assert mock_run.call_args_list[1] == call(
            ['sudo', 'apt-get', 'install', '-y', 'pandoc'], check=True
        )

    def test_failure_propagates(self):
        """Test a failing package manager raises."""
        error = subprocess.CalledProcessError(100, ['apt-get'])
        with patch('check_tools.os.geteuid', return_value=0), \
             patch('check_tools.subprocess.run', side_effect=error):
            with pytest.raises(subprocess.CalledProcessError):
                check_tools.install_package('pandoc')


class TestCheckAndInstall:
    """Test installing only what is missing."""

    def test_installs_only_missing_tools(self):
        available = {'ripmime': True, 'pandoc': False, 'wkhtmltopdf': True}
        with patch('check_tools.is_available', side_effect=lambda t: available[t]), \
             patch('check_tools.install_package') as mock_install:
            installed = check_tools.check_and_install(('ripmime', 'pandoc', 'wkhtmltopdf'))

        mock_install.assert_called_once_with('pandoc')
        assert installed == ['pandoc']

    def test_installs_mapped_package_name(self, capsys):
        with patch('check_tools.is_available', return_value=False), \
             patch('check_tools.install_package') as mock_install:
            check_tools.check_and_install(('munpack',))

        mock_install.assert_called_once_with('mpack')
        assert 'mpack' in capsys.readouterr().out

    def test_nothing_to_do(self):
        with patch('check_tools.is_available', return_value=True), \
             patch('check_tools.install_package') as mock_install:
            assert check_tools.check_and_install(check_tools.REQUIRED_TOOLS) == []
        mock_install.assert_not_called()


class TestOptionalTools:
    """Test optional tool reporting."""

    def test_missing_munpack_is_only_a_note(self, capsys):
        with patch('check_tools.is_available', return_value=False):
            missing = check_tools.report_optional_tools()

        assert missing == ['munpack']
        out = capsys.readouterr().out
        assert "Note: 'munpack' not found. Will continue with 'ripmime' only." in out

    def test_ensure_tools_never_installs_optional(self):
        with patch('check_tools.is_available', return_value=False), \
             patch('check_tools.install_package') as mock_install:
            check_tools.ensure_tools()

        installed = [c.args[0] for c in mock_install.call_args_list]
        assert installed == ['ripmime', 'pandoc', 'wkhtmltopdf']


class TestMain:
    """Test the standalone check."""

    def test_exit_zero_when_everything_present(self):
        with patch('check_tools.is_available', return_value=True):
            assert check_tools.main() == 0

    def test_exit_one_when_install_fails(self):
        error = subprocess.CalledProcessError(100, ['apt-get'])
        with patch('check_tools.ensure_tools', side_effect=error):
            assert check_tools.main() == 1

    def test_exit_one_when_required_tool_still_missing(self):
        with patch('check_tools.ensure_tools', return_value=[]), \
             patch('check_tools.is_available', side_effect=lambda t: t != 'pandoc'):
            assert check_tools.main() == 1
