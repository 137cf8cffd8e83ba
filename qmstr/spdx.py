"""Detection and validation of SPDX license identifiers in source files."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping

from qmstr.nodes import DiagnosticNode, Severity

logger = logging.getLogger(__name__)

SPDX_TAG = "-".join(("SPDX", "License", "Identifier"))

_SPDX_PATTERN = re.compile(re.escape(SPDX_TAG.encode("ascii")) + rb": (.+)\s*")
_MAX_LINES = 100

SPDX_LICENSES: frozenset[str] = frozenset(
    {
        "0BSD", "AAL", "ADSL", "AFL-1.1", "AFL-1.2", "AFL-2.0", "AFL-2.1",
        "AFL-3.0", "AGPL-1.0-only", "AGPL-1.0-or-later", "AGPL-3.0-only",
        "AGPL-3.0-or-later", "AMDPLPA", "AML", "AMPAS", "ANTLR-PD", "APAFML",
        "APL-1.0", "APSL-1.0", "APSL-1.1", "APSL-1.2", "APSL-2.0", "Abstyles",
        "Adobe-2006", "Adobe-Glyph", "Afmparse", "Aladdin", "Apache-1.0",
        "Apache-1.1", "Apache-2.0", "Artistic-1.0-Perl", "Artistic-1.0-cl8",
        "Artistic-1.0", "Artistic-2.0", "BSD-1-Clause", "BSD-2-Clause-FreeBSD",
        "BSD-2-Clause-NetBSD", "BSD-2-Clause-Patent", "BSD-2-Clause",
        "BSD-3-Clause-Attribution", "BSD-3-Clause-Clear", "BSD-3-Clause-LBNL",
        "BSD-3-Clause-No-Nuclear-License-2014",
        "BSD-3-Clause-No-Nuclear-License", "BSD-3-Clause-No-Nuclear-Warranty",
        "BSD-3-Clause", "BSD-4-Clause-UC", "BSD-4-Clause", "BSD-Protection",
        "BSD-Source-Code", "BSL-1.0", "Bahyph", "Barr", "Beerware",
        "BitTorrent-1.0", "BitTorrent-1.1", "Borceux", "CATOSL-1.1",
        "CC-BY-1.0", "CC-BY-2.0", "CC-BY-2.5", "CC-BY-3.0", "CC-BY-4.0",
        "CC-BY-NC-1.0", "CC-BY-NC-2.0", "CC-BY-NC-2.5", "CC-BY-NC-3.0",
        "CC-BY-NC-4.0", "CC-BY-NC-ND-1.0", "CC-BY-NC-ND-2.0", "CC-BY-NC-ND-2.5",
        "CC-BY-NC-ND-3.0", "CC-BY-NC-ND-4.0", "CC-BY-NC-SA-1.0",
        "CC-BY-NC-SA-2.0", "CC-BY-NC-SA-2.5", "CC-BY-NC-SA-3.0",
        "CC-BY-NC-SA-4.0", "CC-BY-ND-1.0", "CC-BY-ND-2.0", "CC-BY-ND-2.5",
        "CC-BY-ND-3.0", "CC-BY-ND-4.0", "CC-BY-SA-1.0", "CC-BY-SA-2.0",
        "CC-BY-SA-2.5", "CC-BY-SA-3.0", "CC-BY-SA-4.0", "CC0-1.0", "CDDL-1.0",
        "CDDL-1.1", "CDLA-Permissive-1.0", "CDLA-Sharing-1.0", "CECILL-1.0",
        "CECILL-1.1", "CECILL-2.0", "CECILL-2.1", "CECILL-B", "CECILL-C",
        "CNRI-Jython", "CNRI-Python-GPL-Compatible", "CNRI-Python", "CPAL-1.0",
        "CPL-1.0", "CPOL-1.02", "CUA-OPL-1.0", "Caldera", "ClArtistic",
        "Condor-1.1", "Crossword", "CrystalStacker", "Cube", "D-FSL-1.0", "DOC",
        "DSDP", "Dotseqn", "ECL-1.0", "ECL-2.0", "EFL-1.0", "EFL-2.0",
        "EPL-1.0", "EPL-2.0", "EUDatagrid", "EUPL-1.0", "EUPL-1.1", "EUPL-1.2",
        "Entessa", "ErlPL-1.1", "Eurosym", "FSFAP", "FSFUL", "FSFULLR", "FTL",
        "Fair", "Frameworx-1.0", "FreeImage", "GFDL-1.1-only",
        "GFDL-1.1-or-later", "GFDL-1.2-only", "GFDL-1.2-or-later",
        "GFDL-1.3-only", "GFDL-1.3-or-later", "GL2PS", "GPL-1.0-only",
        "GPL-1.0-or-later", "GPL-2.0-only", "GPL-2.0-or-later", "GPL-3.0-only",
        "GPL-3.0-or-later", "Giftware", "Glide", "Glulxe", "HPND",
        "HaskellReport", "IBM-pibs", "ICU", "IJG", "IPA", "IPL-1.0", "ISC",
        "ImageMagick", "Imlib2", "Info-ZIP", "Intel-ACPI", "Intel",
        "Interbase-1.0", "JSON", "JasPer-2.0", "LAL-1.2", "LAL-1.3",
        "LGPL-2.0-only", "LGPL-2.0-or-later", "LGPL-2.1-only",
        "LGPL-2.1-or-later", "LGPL-3.0-only", "LGPL-3.0-or-later", "LGPLLR",
        "LPL-1.0", "LPL-1.02", "LPPL-1.0", "LPPL-1.1", "LPPL-1.2", "LPPL-1.3a",
        "LPPL-1.3c", "Latex2e", "Leptonica", "LiLiQ-P-1.1", "LiLiQ-R-1.1",
        "LiLiQ-Rplus-1.1", "Libpng", "Linux-OpenIB", "Linux-syscall-note",
        "MIT-0", "MIT-CMU", "MIT-advertising", "MIT-enna", "MIT-feh", "MIT",
        "MITNFA", "MPL-1.0", "MPL-1.1", "MPL-2.0-no-copyleft-exception",
        "MPL-2.0", "MS-PL", "MS-RL", "MTLL", "MakeIndex", "MirOS", "Motosoto",
        "Multics", "Mup", "NASA-1.3", "NBPL-1.0", "NCSA", "NGPL", "NLOD-1.0",
        "NLPL", "NOSL", "NPL-1.0", "NPL-1.1", "NPOSL-3.0", "NRL", "NTP",
        "Naumen", "Net-SNMP", "NetCDF", "Newsletr", "Nokia", "Noweb",
        "OCCT-PL", "OCLC-2.0", "ODbL-1.0", "OFL-1.0", "OFL-1.1", "OGTSL",
        "OLDAP-1.1", "OLDAP-1.2", "OLDAP-1.3", "OLDAP-1.4", "OLDAP-2.0.1",
        "OLDAP-2.0", "OLDAP-2.1", "OLDAP-2.2.1", "OLDAP-2.2.2", "OLDAP-2.2",
        "OLDAP-2.3", "OLDAP-2.4", "OLDAP-2.5", "OLDAP-2.6", "OLDAP-2.7",
        "OLDAP-2.8", "OML", "OPL-1.0", "OSET-PL-2.1", "OSL-1.0", "OSL-1.1",
        "OSL-2.0", "OSL-2.1", "OSL-3.0", "OpenSSL", "PDDL-1.0", "PHP-3.0",
        "PHP-3.01", "Plexus", "PostgreSQL", "Python-2.0", "QPL-1.0", "Qhull",
        "RHeCos-1.1", "RPL-1.1", "RPL-1.5", "RPSL-1.0", "RSA-MD", "RSCPL",
        "Rdisc", "Ruby", "SAX-PD", "SCEA", "SGI-B-1.0", "SGI-B-1.1",
        "SGI-B-2.0", "SISSL-1.2", "SISSL", "SMLNJ", "SMPPL", "SNIA", "SPL-1.0",
        "SWL", "Saxpath", "Sendmail", "SimPL-2.0", "Sleepycat", "Spencer-86",
        "Spencer-94", "Spencer-99", "SugarCRM-1.1.3", "TCL", "TCP-wrappers",
        "TMate", "TORQUE-1.1", "TOSL", "UPL-1.0", "Unicode-DFS-2015",
        "Unicode-DFS-2016", "Unicode-TOU", "Unlicense", "VOSTROM", "VSL-1.0",
        "Vim", "W3C-19980720", "W3C-20150513", "W3C", "WTFPL", "Watcom-1.0",
        "Wsuipa", "X11", "XFree86-1.1", "XSkat", "Xerox", "Xnet", "YPL-1.0",
        "YPL-1.1", "ZPL-1.1", "ZPL-2.0", "ZPL-2.1", "Zed", "Zend-2.0",
        "Zimbra-1.3", "Zimbra-1.4", "Zlib", "bzip2-1.0.5", "bzip2-1.0.6",
        "curl", "diffmark", "dvipdfm", "eGenix", "gSOAP-1.3b", "gnuplot",
        "iMatix", "libtiff", "mpich2", "psfrag", "psutils", "xinetd", "xpp",
        "zlib-acknowledgement",
    }
)


def is_valid_license(identifier: str) -> bool:
    """Return True if ``identifier`` is a known SPDX license identifier."""
    return identifier in SPDX_LICENSES


def detect_spdx_license(src_file_path: str) -> tuple[str, int, int]:
    """Find the SPDX tag in the first 100 lines of a file.

    Returns the identifier, the 1-based line number and the byte offset of
    the identifier within that line. Raises LookupError if there is no tag.
    """
    with open(src_file_path, "rb") as stream:
        for line_no, raw in enumerate(stream, 1):
            if line_no > _MAX_LINES:
                break
            line = raw.rstrip(b"\n")
            if line.endswith(b"\r"):
                line = line[:-1]
            match = _SPDX_PATTERN.search(line)
            if match is not None:
                identifier = match.group(1).decode("utf-8", errors="replace")
                return identifier, line_no, match.start(1)
    raise LookupError("No SPDX license identifier found")


def _relative(basedir: str, path: str) -> str:
    if os.path.isabs(basedir) != os.path.isabs(path):
        raise ValueError(f"can't make {path} relative to {basedir}")
    return os.path.relpath(path, basedir or ".")


@dataclass
class SpdxAnalyzer:
    """Checks source files for a valid SPDX license identifier."""

    basedir: str = ""

    def configure(self, config_map: Mapping[str, str]) -> None:
        """Take the working directory from the module configuration."""
        try:
            self.basedir = config_map["workdir"]
        except KeyError:
            raise ValueError("no working directory configured") from None

    def diagnose(self, path: str) -> DiagnosticNode:
        """Return the diagnostic for the file at ``path``."""
        try:
            identifier, line_no, column = detect_spdx_license(path)
        except (OSError, LookupError) as exc:
            message = exc.args[0] if isinstance(exc, LookupError) else str(exc)
            logger.info("%s", message)
            return DiagnosticNode(severity=Severity.WARNING, message=message)
        if not is_valid_license(identifier):
            logger.info("Found invalid spdx license identifier %s.", identifier)
            relative = _relative(self.basedir, path)
            return DiagnosticNode(
                severity=Severity.ERROR,
                message=(
                    f"{relative}:{line_no}:{column} "
                    f"Invalid SPDX license expression {identifier}"
                ),
            )
        return DiagnosticNode(
            severity=Severity.INFO,
            message=f"SPDX license expression detected: {identifier}",
        )