# Standard libraries
import re
import sys
from collections import namedtuple

# "<134>2015-08-24T12:44:59Z cache-lhr6335 downloads[332933]: 54.72.251.121 Mon, 24 Aug 2015 12:44:59 GMT
#  /production.s3.rubygems.org/gems/multi_xml-0.5.5.gem 200 Ruby, RubyGems/2.0.14 x86_64-linux Ruby/2.0.0 (2015-04-13 patchlevel 645)"
LOGREGEX = r'^<134>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z cache-[a-z]{3}\d{4} downloads\[\d+\]: ' \
           r'(?P<ip>(?:\d{1,3}\.){3}\d{1,3}) (?P<date>[\w, :]+) GMT ' \
           r'/(?:staging|production)\.s3\.rubygems\.org/gems/(?P<full_name>[^/\s]*)\.gem ' \
           r'\d{3}(?: (?P<agent>.*))?$'

# "Ruby, RubyGems/2.0.14 x86_64-linux Ruby/2.0.0 (2015-04-13 patchlevel 645)"
AGENTREGEX = r'^Ruby, RubyGems/(?P<rubygems_version>[0-9.]+) (?P<platform>.+) ' \
             r'Ruby/(?P<ruby_version>.+) \((?P<release>.+)\)$'

LOG_RE = re.compile(LOGREGEX, re.ASCII)
AGENT_RE = re.compile(AGENTREGEX, re.ASCII)

LogFields = namedtuple("LogFields", ['ip', 'date', 'full_name', 'agent'])
UserAgent = namedtuple("UserAgent", ['rubygems_version', 'platform', 'ruby_version', 'release'])
Download = namedtuple("Download", ['gem_name', 'full_gem_name',
                                   'rubygems_version', 'rubygems_platform',
                                   'ruby_version', 'ruby_release',
                                   'ip', 'date'])

UNKNOWN_AGENT = UserAgent('', '', '', '')


class ParseError(Exception):
    """A log line that cannot be turned into a download."""

    def __init__(self, message, line):
        super().__init__("{0}: {1!r}".format(message, line))
        self.line = line


class MalformedLineError(ParseError):
    def __init__(self, line):
        super().__init__("Malformed log line", line)


class EmptyPackageTokenError(ParseError):
    def __init__(self, line):
        super().__init__("Empty gem name", line)


def match_line(line):
    """Match a raw CDN log line, returning its LogFields.

    Raises MalformedLineError when the line isn't a gem download.
    """
    line = line.rstrip('\r\n')
    match = LOG_RE.match(line)
    if match is None:
        raise MalformedLineError(line)
    return LogFields(ip=match.group('ip'),
                     date=match.group('date'),
                     full_name=match.group('full_name'),
                     agent=match.group('agent') or '')


def split_name(full_name):
    "Split 'rails-4.2.3' into ('rails', '4.2.3') on the last hyphen."
    name, sep, version = full_name.rpartition('-')
    if not sep:
        return full_name, ''
    return name, version


def parse_user_agent(agent):
    match = AGENT_RE.match(agent)
    if match is None:
        return UNKNOWN_AGENT
    return UserAgent(*match.group('rubygems_version', 'platform', 'ruby_version', 'release'))


def parse_log_line(line):
    line = line.rstrip('\r\n')
    fields = match_line(line)
    if not fields.full_name:
        raise EmptyPackageTokenError(line)
    gem_name, _ = split_name(fields.full_name)
    if not gem_name:
        raise EmptyPackageTokenError(line)
    agent = parse_user_agent(fields.agent)
    return Download(gem_name=gem_name,
                    full_gem_name=fields.full_name,
                    rubygems_version=agent.rubygems_version,
                    rubygems_platform=agent.platform,
                    ruby_version=agent.ruby_version,
                    ruby_release=agent.release,
                    ip=fields.ip,
                    date=fields.date)


def parse_logfile(stream, skipped=None, strict=False):
    """
    Yield a Download for every gem download in `stream`.

    Blank lines are ignored. Lines that fail to parse are reported on stderr,
    appended to `skipped` if given, and otherwise ignored, unless `strict` is
    set, in which case the ParseError is raised.
    """
    for line in stream:
        if not line.strip():
            continue
        try:
            download = parse_log_line(line)
        except ParseError as e:
            if strict:
                raise
            print("Skipping line: {0}".format(e), file=sys.stderr)
            if skipped is not None:
                skipped.append(e)
            continue
        yield download
