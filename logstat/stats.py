"""Map a Download onto the counters, sorted sets and hashes it increments."""

# Standard libraries
from collections import namedtuple

DATE_FORMAT = '%Y-%m-%d'

Incr = namedtuple("Incr", ['key'])
ZIncrBy = namedtuple("ZIncrBy", ['key', 'member', 'delta'])
HIncrBy = namedtuple("HIncrBy", ['key', 'field', 'delta'])


def date_key(today):
    if isinstance(today, str):
        return today
    return today.strftime(DATE_FORMAT)


def mutations_for(download, today):
    """
    Return the list of mutations recording `download` on the day `today`.

    `today` is the day the batch is processed, as a date or a 'YYYY-MM-DD'
    string, not the request date from the log line.
    """
    day = date_key(today)
    gem = download.gem_name
    full = download.full_gem_name
    mutations = [
        Incr("downloads"),
        Incr(f"downloads:rubygem:{gem}"),
        Incr(f"downloads:version:{full}"),
        ZIncrBy(f"downloads:today:{day}", full, 1),
        ZIncrBy("downloads:all", full, 1),
        HIncrBy(f"downloads:version_history:{full}", day, 1),
        HIncrBy(f"downloads:rubygem_history:{gem}", day, 1),
    ]

    usage = [("rubygem_version", download.rubygems_version),
             ("ruby_platform", download.rubygems_platform),
             ("ruby_version", download.ruby_version),
             ("ruby_release", download.ruby_release)]
    for name, value in usage:
        if value:
            mutations.append(HIncrBy(f"usage:{name}:{day}", value, 1))
    return mutations
