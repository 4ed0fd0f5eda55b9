"""ec2-tag-facts — expose an EC2 instance's resource tags as Facter facts.

Run as a Facter external fact executable::

    ec2-tag-facts                      # name=value lines on stdout
    ec2-tag-facts --format json

Each tag ``Key`` is normalized into a fact name (``cost-center`` →
``ec2_tag_cost_center``) and its ``Value`` is passed through unchanged.
"""

from __future__ import annotations

__version__ = "0.3.0"
