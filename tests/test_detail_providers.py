import base64
import json
import unittest
from urllib.parse import urlparse

from reelhub.core.errors import ExtractionEmptyError, FetchError, ValidationError
from reelhub.models.scrape_result import RawDocument
from reelhub.providers.allmovieshub import AllMoviesHubProvider
from reelhub.providers.desiremovies import DesireMoviesProvider
from reelhub.providers.filmyfly import FilmyFlyProvider
from reelhub.providers.fourkhdhub import FourKHDHubProvider
from reelhub.providers.gyanigurus import GyanGurusProvider
from reelhub.providers.hdhub4u import HDHub4uProvider
from reelhub.providers.kmmovies import KMMoviesProvider
from reelhub.providers.moviesdrive import MoviesDriveProvider
from reelhub.providers.showbox import ShowboxProvider
from reelhub.providers.zinkmovies import ZinkMoviesProvider, link_info


class FakeFetcher:
    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def fetch(self, url, **kwargs):
        self.calls.append((url, kwargs))
        page = self.pages.get(url)
        if page is None:
            raise FetchError(f"Upstream returned HTTP 404 for {url}", upstream_status=404, url=url)
        if isinstance(page, Exception):
            raise page
        return RawDocument(url=url, status_code=200, text=page)

    def fetch_json(self, url, **kwargs):
        return json.loads(self.fetch(url, **kwargs).text)


class FakeBaseUrls:
    def __init__(self, urls):
        self.urls = urls

    def get_base_url(self, key):
        return self.urls[key]

    def belongs_to(self, url, key):
        return urlparse(url).hostname == urlparse(self.urls[key]).hostname


class _Settings:
    def __init__(self, **values):
        self.data = values

    def get(self, key, default=None):
        return self.data.get(key, default)


BASES = FakeBaseUrls({"4kHDHub": "https://4khdhub.test", "filmyfly": "https://filmyfly.test"})


FOURK_DETAILS = """
<html><head><title>Dark (2017) 4K</title></head><body>
<div class="content-section">
  <div class="download-item">
    <div class="download-header" data-file-id="42">
      <div class="flex-1">Season 1 Pack<br><span class="badge">5.2 GB</span></div>
      <span class="badge">Hindi, English</span><span class="badge">1080p</span>
    </div>
    <div id="content-42">
      <div class="file-title">Dark.S01.1080p.WEB-DL.mkv</div>
      <span class="badge">WEB-DL</span>
      <a href="https://techyboy4u.com/?id=a">HubCloud Server</a>
      <a href="https://techyboy4u.com/?id=b">HubDrive Server</a>
    </div>
  </div>
</div>
<div id="episodes">
  <div class="episode-item">
    <div class="episode-header" data-episode-id="s1">
      <span class="episode-number">S01</span><span class="episode-title">1080p WEB-DL</span>
      <div class="episode-meta"><span class="badge">8 Episodes</span><span class="badge">Hindi</span></div>
    </div>
    <div class="episode-content">
      <div class="episode-download-item">
        <span class="episode-file-title">Dark.S01E01.mkv</span>
        <div class="episode-file-info"><span class="badge badge-psa">E01</span><span class="badge badge-size">700 MB</span></div>
        <div class="episode-links"><a href="https://techyboy4u.com/?id=e1">HubCloud</a></div>
      </div>
    </div>
  </div>
</div>
</body></html>
"""


class TestFourKHDHubDetails(unittest.TestCase):
    def test_packs_and_seasons(self):
        url = "https://4khdhub.test/dark-series/"
        fetcher = FakeFetcher({url: FOURK_DETAILS})
        data = FourKHDHubProvider(fetcher, base_urls=BASES).details(url)

        self.assertEqual(data["title"], "Dark (2017) 4K")
        self.assertEqual(data["totalPacks"], 1)
        pack = data["completePacks"][0]
        self.assertEqual(pack["id"], "42")
        self.assertEqual(pack["title"], "Dark.S01.1080p.WEB-DL.mkv")
        self.assertEqual(pack["season"], "Season 1 Pack")
        self.assertEqual(pack["size"], "5.2 GB")
        self.assertEqual(pack["languages"], ["Hindi", "English"])
        self.assertEqual(pack["quality"], "1080p")
        self.assertEqual(pack["format"], "WEB-DL")
        self.assertEqual([l["type"] for l in pack["links"]], ["HubCloud", "HubDrive"])

        season = data["episodeSeasons"][0]
        self.assertEqual(season["season"], "S01")
        self.assertEqual(season["episodeCount"], 8)
        self.assertEqual(season["languages"], ["Hindi"])
        self.assertEqual(season["episodes"][0]["episodeNumber"], "E01")
        self.assertEqual(season["episodes"][0]["size"], "700 MB")

    def test_empty_page_is_not_found(self):
        url = "https://4khdhub.test/empty/"
        provider = FourKHDHubProvider(FakeFetcher({url: "<html><title>x</title></html>"}), base_urls=BASES)
        with self.assertRaises(ExtractionEmptyError):
            provider.details(url)

    def test_foreign_domain_rejected_before_fetch(self):
        fetcher = FakeFetcher()
        with self.assertRaises(ValidationError):
            FourKHDHubProvider(fetcher, base_urls=BASES).details("https://other.test/dark/")
        self.assertEqual(fetcher.calls, [])


GYANI_PAGE = """
<div style="padding-bottom:5px; padding-top:10px; border-bottom:1px solid #ddd">
  <a class="hover_a link" href="https://hubcloud.one/drive/abc/Movie.1080p.mkv">Movie 1080p</a>
</div>
<a href="https://gdflix.dad/file/xyz">GDFlix</a>
<a href="https://example.com/other">Other</a>
<a href="https://hubcloud.one/drive/abc/Movie.1080p.mkv">Duplicate</a>
"""


class TestGyanGurus(unittest.TestCase):
    def test_links_grouped_by_host(self):
        url = "https://gyanigurus.info/movie/1"
        fetcher = FakeFetcher({url: GYANI_PAGE})
        data = GyanGurusProvider(fetcher).links(url)
        self.assertEqual(data["totalLinks"], 2)
        self.assertEqual(data["providers"], ["HubCloud", "GDflix"])
        first = data["links"][0]
        self.assertEqual(first["quality"], "1080p")
        self.assertEqual(first["fileName"], "Movie.1080p.mkv")
        self.assertEqual(data["links"][1]["quality"], "Unknown")
        self.assertEqual(data["sourceUrl"], url)
        self.assertEqual(fetcher.calls[0][1]["referer"], "https://gyanigurus.info/")

    def test_rejects_other_sites(self):
        fetcher = FakeFetcher()
        with self.assertRaises(ValidationError):
            GyanGurusProvider(fetcher).links("https://example.com/movie")
        self.assertEqual(fetcher.calls, [])


FILMYFLY_DETAILS = """
<h1>Movie (2024) Hindi</h1>
<div class="dlbtn"><a class="dl" href="https://linkmake.test/view/1">Download 720p</a></div>
<div class="dlbtn"><a class="dl" href="https://linkmake.test/view/2">Download 1080p</a></div>
"""

LINKMAKE_PAGE = """
<div class="dlink dl"><a href="https://filesdl.site/cloud/1"><div class="dll">{720p} Movie 950mb</div></a></div>
"""

FILESDL_PAGE = """
<a href="https://filesdl.site/">Home</a>
<a href="https://facebook.com/share">Share</a>
<a href="https://cdn.test/watch/1">Watch Online</a>
<a href="https://cdn.test/fdownload.php?id=1">Fast Server 950 MB</a>
"""


class TestFilmyFly(unittest.TestCase):
    def test_failed_linkmake_hop_keeps_button(self):
        url = "https://filmyfly.test/page-download/1/Movie.html"
        fetcher = FakeFetcher({
            url: FILMYFLY_DETAILS,
            "https://linkmake.test/view/1": LINKMAKE_PAGE,
            "https://linkmake.test/view/2": FetchError("Network error", url="https://linkmake.test/view/2"),
        })
        data = FilmyFlyProvider(fetcher, base_urls=BASES).details(url)
        self.assertEqual(data["title"], "Movie (2024) Hindi")
        self.assertEqual(data["totalLinks"], 2)
        resolved, kept = data["downloadLinks"]
        self.assertEqual(resolved["url"], "https://filesdl.site/cloud/1")
        self.assertEqual(resolved["quality"], "720p")
        self.assertEqual(resolved["size"], "950mb")
        self.assertEqual(kept["url"], "https://linkmake.test/view/2")
        self.assertEqual(kept["qualities"], ["1080p"])

    def test_no_buttons_is_not_found(self):
        url = "https://filmyfly.test/page-download/2/Empty.html"
        with self.assertRaises(ExtractionEmptyError):
            FilmyFlyProvider(FakeFetcher({url: "<h1>Empty</h1>"}), base_urls=BASES).details(url)

    def test_extract_filters_and_orders_links(self):
        url = "https://filesdl.site/cloud/1"
        data = FilmyFlyProvider(FakeFetcher({url: FILESDL_PAGE}), base_urls=BASES).extract(url)
        self.assertEqual(data["originalUrl"], url)
        self.assertEqual([l["url"] for l in data["links"]], [
            "https://cdn.test/fdownload.php?id=1",
            "https://cdn.test/watch/1",
        ])
        self.assertEqual(data["links"][0]["size"], "950 MB")
        self.assertEqual(data["links"][1]["type"], "other")

    def test_extract_requires_filesdl(self):
        with self.assertRaises(ValidationError):
            FilmyFlyProvider(FakeFetcher(), base_urls=BASES).extract("https://example.com/x")


ZINK_DETAILS = """
<h1 class="entry-title">Show (2025) Season 1</h1>
<div itemprop="description" class="wp-content">
  A family drama in a small town.
  <div class="maxbutton-1"><span class="mb-text">Hindi-English</span></div>
  <div class="movie-button-container"><a href="https://zinkmovies.test/dl/1"><span>1080P WEB-DL H.265 ESUB [1.2GB]</span></a></div>
  <a href="https://jiostar.work/show-s01/">Season 1 480P</a>
  <div class="custom-telegram-button"><a href="https://t.me/zink">Join</a></div>
</div>
<div class="video-player-wrapper"><iframe src="https://player.test/embed/1"></iframe></div>
"""

JIO_PAGE = """
<h1 class="entry-title">Show S01</h1>
<div class="entry-content">
  <a href="https://videosaver.me/file/e2"><span class="mb-text">EPISODE 2 (450MB)</span></a>
  <a href="https://videosaver.me/file/e1"><span class="mb-text">EPISODE 1 (400MB)</span></a>
  <a href="https://videosaver.me/file/e1b"><span class="mb-text">EPISODE 1 (400MB)</span></a>
  <a href="https://videosaver.me/file/trailer">Trailer</a>
</div>
"""

MIRROR_PAGE = '<div class="mirror-buttons"><a class="hubcloud" href="https://hubcloud.one/drive/zz">HubCloud</a></div>'


def _share_page(target):
    token = base64.b64encode(target.encode("utf-8")).decode("ascii")
    return f"<script>var url = 'https://gamerxyt.com/hubcloud.php?id=1&r={token}';</script>"


class TestZinkMovies(unittest.TestCase):
    def test_link_info(self):
        info = link_info("1080P WEB-DL H.265 ESUB [1.2GB] Hindi-English")
        self.assertEqual(info["quality"], "1080P")
        self.assertEqual(info["language"], "Hindi-English")
        self.assertEqual(info["size"], "1.2GB")
        self.assertEqual(info["format"], "WEB-DL H.265 ESUB")

    def test_details(self):
        url = "https://zinkmovies.test/show-2025/"
        data = ZinkMoviesProvider(FakeFetcher({url: ZINK_DETAILS})).details(url)
        self.assertEqual(data["title"], "Show (2025) Season 1")
        self.assertEqual(data["description"], "A family drama in a small town.")
        self.assertEqual(data["audio"], "Hindi-English")
        self.assertEqual(data["downloadLinks"][0]["server"], "Direct")
        self.assertEqual(data["downloadLinks"][0]["quality"], "1080P")
        self.assertEqual([j["url"] for j in data["jioStarLinks"]], ["https://jiostar.work/show-s01/"])
        self.assertEqual(data["telegramUrl"], "https://t.me/zink")
        self.assertEqual(data["playerUrl"], "https://player.test/embed/1")

    def test_jio_episodes_sorted_and_unique(self):
        url = "https://jiostar.work/show-s01/"
        fetcher = FakeFetcher({url: JIO_PAGE})
        data = ZinkMoviesProvider(fetcher).jio(url)
        self.assertEqual([e["episodeNumber"] for e in data["episodes"]], [1, 2])
        self.assertEqual(data["episodes"][0]["url"], "https://videosaver.me/file/e1")
        self.assertEqual(data["episodes"][0]["size"], "400MB")
        self.assertEqual(data["totalEpisodes"], 2)
        self.assertEqual(fetcher.calls[0][1]["referer"], "https://jiostar.work/")

    def test_jio_without_episodes_is_not_found(self):
        url = "https://jiostar.work/empty/"
        with self.assertRaises(ExtractionEmptyError):
            ZinkMoviesProvider(FakeFetcher({url: "<div class='entry-content'></div>"})).jio(url)

    def test_mirror(self):
        url = "https://videosaver.me/file/e1"
        data = ZinkMoviesProvider(FakeFetcher({url: MIRROR_PAGE})).mirror(url)
        self.assertEqual(data, {"hubCloudUrl": "https://hubcloud.one/drive/zz"})

    def test_mirror_missing(self):
        url = "https://videosaver.me/file/e9"
        with self.assertRaises(ExtractionEmptyError) as ctx:
            ZinkMoviesProvider(FakeFetcher({url: "<p>gone</p>"})).mirror(url)
        self.assertEqual(ctx.exception.error, "Mirror link not found")

    def test_resolve_full_chain(self):
        fetcher = FakeFetcher({
            "https://videosaver.me/file/e1": MIRROR_PAGE,
            "https://hubcloud.one/drive/zz": _share_page("https://gamerxyt.com/land"),
            "https://gamerxyt.com/land": '<a class="btn" href="https://pub-9.r2.dev/Show.E01.mkv">[FSL Server]</a>',
        })
        terminal = ZinkMoviesProvider(fetcher).resolve("https://videosaver.me/file/e1")
        self.assertEqual(terminal.hops, 3)
        self.assertEqual(terminal.url, "https://pub-9.r2.dev/Show.E01.mkv")
        self.assertEqual(terminal.links[0]["server"], "Cf Worker")

    def test_invalid_urls_rejected_before_fetch(self):
        fetcher = FakeFetcher()
        provider = ZinkMoviesProvider(fetcher)
        for call, url in (
            (provider.details, "https://example.com/x"),
            (provider.jio, "https://example.com/x"),
            (provider.mirror, "https://videosaver.me/other/1"),
            (provider.resolve, None),
        ):
            with self.assertRaises(ValidationError):
                call(url)
        self.assertEqual(fetcher.calls, [])


SHOWBOX_MOVIE = """
<h1 class="heading-name"><a href="/movie/m-dune-2021/1234">Dune</a></h1>
<div class="btn-imdb">IMDb 8.0</div>
<div class="cover_follow" style="background-image: url(https://img.showbox.test/dune.jpg)"></div>
<div class="description">
	A noble family becomes embroiled in a war.
</div>
"""


class TestShowbox(unittest.TestCase):
    def test_details_follow_share_and_file_list(self):
        page = "https://www.showbox.media/movie/m-dune-2021"
        fetcher = FakeFetcher({
            page: SHOWBOX_MOVIE,
            "https://www.showbox.media/index/share_link?id=1234&type=1": json.dumps(
                {"code": 1, "data": {"link": "https://www.febbox.com/share/AbCd"}}
            ),
            "https://www.febbox.com/file/file_share_list?share_key=AbCd&is_html=0": json.dumps(
                {"data": {"file_list": [
                    {"fid": 99, "file_name": "Dune.2021.mkv", "file_size": "2.1 GB", "is_dir": 0},
                ]}}
            ),
        })
        settings = _Settings(provider_cookies={"showbox": "ci=abc"})
        data = ShowboxProvider(fetcher, settings=settings).details(page)

        self.assertEqual(data["title"], "Dune")
        self.assertEqual(data["rating"], "8.0")
        self.assertEqual(data["image"], "https://img.showbox.test/dune.jpg")
        self.assertEqual(data["synopsis"], "A noble family becomes embroiled in a war.")
        self.assertEqual(data["type"], "movie")
        self.assertEqual(data["linkList"], [{"title": "Dune.2021.mkv (2.1 GB)", "episodesLink": "AbCd&"}])
        self.assertNotIn("febId", data)
        self.assertTrue(all(kwargs.get("cookies") == "ci=abc" for _, kwargs in fetcher.calls))

    def test_series_uses_folder_listing(self):
        page = "https://www.showbox.media/tv/t-dark-2017"
        fetcher = FakeFetcher({
            page: '<h1 class="heading-name"><a href="/tv/t-dark-2017/55">Dark</a></h1>',
            "https://www.showbox.media/index/share_link?id=55&type=2": json.dumps({"data": {"link": "https://www.febbox.com/share/K1"}}),
            "https://www.febbox.com/file/file_share_list?share_key=K1&pwd=&parent_id=&is_html=0": json.dumps(
                {"data": {"file_list": [{"fid": 7, "file_name": "Season 1", "file_size": "0", "is_dir": 1}]}}
            ),
        })
        data = ShowboxProvider(fetcher).details(page)
        self.assertEqual(data["type"], "series")
        self.assertEqual(data["linkList"][0]["episodesLink"], "K1&7")

    def test_missing_share_link_is_upstream_failure(self):
        page = "https://www.showbox.media/movie/m-x"
        fetcher = FakeFetcher({
            page: '<h1 class="heading-name"><a href="/movie/m-x/9">X</a></h1>',
            "https://www.showbox.media/index/share_link?id=9&type=1": json.dumps({"data": {}}),
        })
        with self.assertRaises(FetchError):
            ShowboxProvider(fetcher).details(page)

    def test_page_without_title_is_not_found(self):
        page = "https://www.showbox.media/movie/m-none"
        with self.assertRaises(ExtractionEmptyError):
            ShowboxProvider(FakeFetcher({page: "<p>blocked</p>"})).details(page)

    def test_requires_showbox_url(self):
        fetcher = FakeFetcher()
        with self.assertRaises(ValidationError):
            ShowboxProvider(fetcher).details("https://example.com/movie/x")
        self.assertEqual(fetcher.calls, [])


class TestLookalikeHostsRejected(unittest.TestCase):
    """Site names in a path, query or foreign subdomain never pass a host check."""

    def assert_rejected(self, call, url, fetcher):
        with self.assertRaises(ValidationError):
            call(url)
        self.assertEqual(fetcher.calls, [])

    def test_zinkmovies_urls(self):
        fetcher = FakeFetcher()
        provider = ZinkMoviesProvider(fetcher)
        self.assert_rejected(provider.details, "https://attacker.test/zinkmovies", fetcher)
        self.assert_rejected(provider.details, "https://zinkmovies.attacker.test/x", fetcher)
        self.assert_rejected(provider.jio, "https://attacker.test/?u=jiostar.work", fetcher)
        self.assert_rejected(provider.mirror, "https://attacker.test/videosaver.me/file/1", fetcher)
        self.assert_rejected(provider.resolve, "https://videosaver.me.attacker.test/file/1", fetcher)

    def test_gyanigurus_url(self):
        fetcher = FakeFetcher()
        self.assert_rejected(GyanGurusProvider(fetcher).links, "https://attacker.test/gyanigurus.info", fetcher)

    def test_filesdl_url(self):
        fetcher = FakeFetcher()
        provider = FilmyFlyProvider(fetcher, base_urls=BASES)
        self.assert_rejected(provider.extract, "https://attacker.test/filesdl.site/x", fetcher)
        self.assert_rejected(provider.extract, "https://filesdl.site.attacker.test/x", fetcher)

    def test_showbox_url(self):
        fetcher = FakeFetcher()
        self.assert_rejected(ShowboxProvider(fetcher).details, "https://attacker.test/showbox.media/movie/x", fetcher)

    def test_subdomains_of_real_hosts_pass(self):
        fetcher = FakeFetcher({"https://www.jiostar.work/s/1": "<p></p>"})
        with self.assertRaises(ExtractionEmptyError):
            ZinkMoviesProvider(fetcher).jio("https://www.jiostar.work/s/1")
        self.assertEqual(len(fetcher.calls), 1)


class TestShowboxSeriesFolder(unittest.TestCase):
    def test_folder_listing_for_episode_id(self):
        url = "https://www.febbox.com/file/file_share_list?share_key=K1&pwd=&parent_id=7&is_html=0"
        fetcher = FakeFetcher({url: json.dumps({"data": {"file_list": [{"fid": 8, "file_name": "Dark.S01E01.mkv"}]}})})
        settings = _Settings(provider_cookies={"showbox": "ci=abc"})
        listing = ShowboxProvider(fetcher, settings=settings).series("K1&7")
        self.assertEqual(listing["data"]["file_list"][0]["file_name"], "Dark.S01E01.mkv")
        self.assertEqual(fetcher.calls[0][1]["cookies"], "ci=abc")

    def test_malformed_episode_ids_rejected_before_fetch(self):
        fetcher = FakeFetcher()
        provider = ShowboxProvider(fetcher)
        for value, error in (
            (None, "Episode ID is required"),
            ("  ", "Episode ID is required"),
            ("K1", "Invalid episode ID format"),
            ("K1&", "Invalid episode ID format"),
            ("K1&7&x=1", "Invalid episode ID format"),
            ("../K1&7", "Invalid episode ID format"),
        ):
            with self.assertRaises(ValidationError) as ctx:
                provider.series(value)
            self.assertEqual(ctx.exception.error, error)
        self.assertEqual(fetcher.calls, [])


KMMOVIES_DETAILS = """
<html><head><title>Kalki 2898 AD (2024) | KMMovies</title></head><body>
<h1 class="entry-title">Kalki 2898 AD (2024) Hindi 1080p</h1>
<div class="entry-meta"><div class="post-thumbnail"><img src="//img.kmmovies.test/kalki.jpg"></div></div>
<div class="mip-movie-info">
  <h3>Storyline:</h3>
  <p>A modern avatar of Vishnu descends.</p>
  <h3>Movie Info:</h3>
  <p><strong>Movie Name:</strong> Kalki 2898 AD<br><strong>Directed By:</strong> Nag Ashwin<br>
  <strong>Release Date:</strong> 27 June 2024<br><strong>Language:</strong> Hindi-Telugu<br>
  <strong>IMDb Rating:</strong> 7.1 (50K)</p>
</div>
<div class="download-buttons">
  <h4>1080p HEVC | File Size: 2.4 GB</h4>
  <p><a href="https://magiclinks.test/m/1">Download Now</a></p>
  <h4>720p | File Size: 1.2 GB</h4>
  <p><a href="https://magiclinks.test/m/2">Download Now</a></p>
</div>
</body></html>
"""

MAGIC_LINKS = """
<a class="download-button" href="https://zipzap.lol/nf/index.php?videoUrl=https%3A%2F%2Fcdn.test%2Fv.mp4">WATCH ONLINE</a>
<a class="download-button" href="https://new.gdflix.test/file/abc">GDFLIX</a>
<a class="download-button" href="https://new.gdflix.test/file/abc">GDFLIX Mirror</a>
<a class="download-button" href="https://gdtot.test/file/x">GDTOT</a>
"""


class TestKMMovies(unittest.TestCase):
    def test_details(self):
        url = "https://w1.kmmovies.test/kalki-2898-ad/"
        data = KMMoviesProvider(FakeFetcher({url: KMMOVIES_DETAILS})).details(url)

        self.assertEqual(data["title"], "Kalki 2898 AD")
        self.assertEqual(data["mainImage"], "https://img.kmmovies.test/kalki.jpg")
        self.assertEqual(data["storyline"], "A modern avatar of Vishnu descends.")
        self.assertEqual(data["director"], "Nag Ashwin")
        self.assertEqual(data["releaseYear"], "2024")
        self.assertEqual(data["languages"], ["Hindi", "Telugu"])
        self.assertEqual(data["imdbRating"]["text"], "7.1")
        self.assertEqual(data["availableQualities"], ["1080p HEVC", "720p"])
        self.assertEqual(data["downloadLinks"][0], {
            "url": "https://magiclinks.test/m/1",
            "quality": "1080p HEVC",
            "size": "2.4 GB",
            "text": "Download Now",
        })
        self.assertEqual(data["sourceUrl"], url)

    def test_magic_links_unwrap_player_and_dedupe(self):
        url = "https://magiclinks.test/m/1"
        fetcher = FakeFetcher({url: MAGIC_LINKS})
        data = KMMoviesProvider(fetcher).magic_links(url)

        self.assertEqual(fetcher.calls[0][1]["referer"], "https://w1.kmmovies.mobi/")
        self.assertEqual(data["totalFound"], 3)
        self.assertEqual([(l["provider"], l["url"]) for l in data["links"]], [
            ("Watch Online", "https://cdn.test/v.mp4"),
            ("GDFLIX", "https://new.gdflix.test/file/abc"),
            ("GDTOT", "https://gdtot.test/file/x"),
        ])
        self.assertEqual(data["links"][0]["quality"], "Stream")

    def test_other_hosts_rejected(self):
        fetcher = FakeFetcher()
        provider = KMMoviesProvider(fetcher)
        with self.assertRaises(ValidationError):
            provider.details("https://attacker.test/kmmovies/x")
        with self.assertRaises(ValidationError):
            provider.magic_links("https://kmmovies.test/m/1")
        self.assertEqual(fetcher.calls, [])


DESIRE_MOVIE = """
<h1 class="entry-title">Download Dune (2021)</h1>
<div class="entry-content">
<p><img src="//img.test/dune.jpg"></p>
<p><strong>Download Dune (2021) Dual Audio</strong></p>
<p>Title : Dune<br>Year : 2021<br>IMDb : 8.0/10<br>Language : Hindi + English</p>
<p>1080p [2.5GB]</p>
<p><a href="https://dl.test/1080">DOWNLOAD LINKS</a></p>
<p>720p HEVC [900MB]</p>
<p><a href="https://dl.test/720">DOWNLOAD LINKS</a></p>
</div>
"""

DESIRE_SERIES = """
<div class="entry-content">
<p><strong>Download Mirzapur Season 3</strong></p>
<h3>EP 01</h3>
<h4>x264 <a href="https://dl.test/e1-720">720p</a></h4>
<h4>x265 <a href="https://dl.test/e1-hevc">720p HEVC</a></h4>
<h3>EP 02</h3>
<h4>x264 <a href="https://dl.test/e2-720">720p</a></h4>
</div>
"""


class TestDesireMovies(unittest.TestCase):
    def test_movie_quality_blocks(self):
        url = "https://desiremovies.test/dune-2021/"
        data = DesireMoviesProvider(FakeFetcher({url: DESIRE_MOVIE})).details(url)

        self.assertEqual(data["title"], "Dune (2021) Dual Audio")
        self.assertEqual(data["posterUrl"], "https://img.test/dune.jpg")
        self.assertEqual(data["contentType"], "Movie")
        self.assertEqual(data["movieTitle"], "Dune")
        self.assertEqual(data["year"], "2021")
        self.assertEqual(data["imdbRating"], "8.0/10")
        self.assertEqual(data["languages"], "Hindi + English")

        links = data["downloadLinks"]
        self.assertTrue(links[0]["isMainLink"])
        self.assertEqual([(l["quality"], l["size"], l["type"]) for l in links[1:]], [
            ("1080p", "2.5GB", "Standard"),
            ("720p HEVC", "900MB", "HEVC"),
        ])

    def test_series_episodes(self):
        url = "https://desiremovies.test/mirzapur-s03/"
        data = DesireMoviesProvider(FakeFetcher({url: DESIRE_SERIES})).details(url)

        self.assertEqual(data["title"], "Mirzapur Season 3")
        self.assertEqual(data["contentType"], "TV Series")
        self.assertEqual(data["totalEpisodes"], 2)
        first = data["episodes"][0]
        self.assertEqual(first["episodeNumber"], 1)
        self.assertEqual([(l["encoding"], l["type"]) for l in first["downloadLinks"]], [
            ("x264", "Standard"),
            ("x265", "HEVC"),
        ])
        self.assertNotIn("downloadLinks", data)

    def test_other_hosts_rejected(self):
        fetcher = FakeFetcher()
        with self.assertRaises(ValidationError):
            DesireMoviesProvider(fetcher).details("https://desiremovies.test.attacker.test/x")
        self.assertEqual(fetcher.calls, [])


MOVIESDRIVE_EPISODES = """
<div class="entry-content">
<img fetchpriority="high" src="//img.test/md.jpg">
<h5 style="text-align: center;">Season 1 {Hindi} 480p <a href="https://mdrive.today/archives/1">480p</a> <a href="https://mdrive.today/archives/2">Zip</a></h5>
<h5 style="text-align: center;">Season 2 1080p <a href="https://mdrive.today/archives/3">Single Episode</a></h5>
<p>Season 3</p>
<p><a href="https://mdrive.today/archives/9">720p [1GB]</a></p>
<p><a href="https://www.imdb.com/title/tt1">IMDb 8.1</a></p>
</div>
"""


class TestMoviesDrive(unittest.TestCase):
    def test_episode_links_ordered_by_season(self):
        url = "https://moviesdrive.test/show/"
        data = MoviesDriveProvider(FakeFetcher({url: MOVIESDRIVE_EPISODES})).episode(url)

        self.assertEqual(data["mainImage"], "https://img.test/md.jpg")
        self.assertEqual(data["imdbRating"], {"url": "https://www.imdb.com/title/tt1", "text": "IMDb 8.1"})
        self.assertEqual([(e["season"], e["url"]) for e in data["episodes"]], [
            (1, "https://mdrive.today/archives/1"),
            (2, "https://mdrive.today/archives/3"),
            (3, "https://mdrive.today/archives/9"),
        ])
        self.assertEqual(data["episodes"][1]["quality"], "1080p Single Episode")

    def test_page_without_links_is_not_found(self):
        url = "https://moviesdrive.test/empty/"
        with self.assertRaises(ExtractionEmptyError) as ctx:
            MoviesDriveProvider(FakeFetcher({url: "<p>nothing</p>"})).episode(url)
        self.assertEqual(ctx.exception.error, "No episodes found")


ALLMOVIES_PAGE = """
<html><head><title>Oppenheimer (2023) Hindi English 1080p WEB-DL</title></head><body>
<div class="entry-content"><p>The story of J. Robert Oppenheimer.</p>
<h3><a href="https://bollydrive.test/f/1080"><em>1080p [2.6GB]</em></a></h3>
<h3><a href="https://example.test/other">720p elsewhere</a></h3>
<div style="text-align: center;"><a style="color: #ff9900;" href="https://file.test/f/480"><em>480p [450MB]</em></a></div>
<div style="text-align: center;"><a style="color: #ff9900;" href="https://bollydrive.test/f/1080">1080p [2.6GB]</a></div>
</div></body></html>
"""


class TestAllMoviesHub(unittest.TestCase):
    def test_download_links_by_slug(self):
        fetcher = FakeFetcher({"https://allmovies.test/oppenheimer-2023/": ALLMOVIES_PAGE})
        bases = FakeBaseUrls({"allmovieshub": "https://allmovies.test"})
        data = AllMoviesHubProvider(fetcher, base_urls=bases).download("/oppenheimer-2023/")

        self.assertEqual(fetcher.calls[0][1]["referer"], "https://allmovies.test/")
        self.assertEqual(data["movieName"], "oppenheimer-2023")
        self.assertEqual([(l["quality"], l["size"], l["url"]) for l in data["downloadLinks"]], [
            ("480p", "450MB", "https://file.test/f/480"),
            ("1080p", "2.6GB", "https://bollydrive.test/f/1080"),
        ])
        self.assertEqual(data["metadata"]["releaseYear"], "2023")
        self.assertEqual(data["metadata"]["languages"], ["Hindi", "English"])
        self.assertEqual(data["metadata"]["description"], "The story of J. Robert Oppenheimer.")

    def test_slug_validation(self):
        fetcher = FakeFetcher()
        provider = AllMoviesHubProvider(fetcher, base_urls=FakeBaseUrls({"allmovieshub": "https://allmovies.test"}))
        for value, error in ((None, "Missing movie"), ("", "Missing movie"), ("../admin", "Invalid movie"),
                             ("a b", "Invalid movie"), ("x?y=1", "Invalid movie")):
            with self.assertRaises(ValidationError) as ctx:
                provider.download(value)
            self.assertEqual(ctx.exception.error, error)
        self.assertEqual(fetcher.calls, [])


HDHUB4U_SERIES = """
<h1>Mirzapur Season 3 - HDHub4u</h1>
<h3><a href="https://techyboy4u.com/?id=e1">EPiSODE 1</a> | <a href="https://hdstream4u.com/file/e1">WATCH</a></h3>
<h4><span>EPiSODE 2</span></h4>
<h4>720p | <a href="https://hubdrive.wales/file/e2-720">Drive</a></h4>
<h4>1080p | <a href="https://hubdrive.wales/file/e2-1080">Drive</a></h4>
<h4><span>EPiSODE 1</span></h4>
<h4>1080p | <a href="https://hubdrive.wales/file/e1-1080">Drive</a></h4>
"""

HDHUB4U_MOVIE = """
<html><head><title>Dune (2021) - HDHub4u</title></head><body>
<h3><a href="https://hubdrive.wales/file/1080">Dune 1080p [2.4GB]</a></h3>
<h4><a href="https://hdstream4u.com/file/d">WATCH</a> | <a href="https://hubstream.art/p/d">PLAYER-2</a></h4>
<p><a href="https://hubcdn.fans/file/sample">SAMPLE</a></p>
<p><a href="https://example.test/x">720p elsewhere</a></p>
</body></html>
"""

HDHUB4U_OLD_MOVIE = """
<h1>Old Film (1999)</h1>
<div class="entry-content">
<p>Download 720p [900MB] <a href="https://techyboy4u.com/?id=m720">Link</a></p>
<p><a href="https://techyboy4u.com/?id=m480">480p Download</a></p>
</div>
"""


class TestHDHub4u(unittest.TestCase):
    def _details(self, html, url="https://new3.hdhub4u.test/page/"):
        fetcher = FakeFetcher({url: html})
        return HDHub4uProvider(fetcher).details(url), fetcher

    def test_series_episodes_merge_drive_links(self):
        data, fetcher = self._details(HDHUB4U_SERIES)
        self.assertEqual(fetcher.calls[0][1]["referer"], "https://new3.hdhub4u.test/")
        self.assertEqual(data["title"], "Mirzapur Season 3")
        self.assertEqual(data["type"], "series")
        self.assertNotIn("directDownloads", data)
        first, second = data["episodes"]
        self.assertEqual(first, {
            "episode": "Episode 1",
            "episodeNumber": 1,
            "techyboyUrl": "https://techyboy4u.com/?id=e1",
            "watchUrl": "https://hdstream4u.com/file/e1",
            "driveUrl1080p": "https://hubdrive.wales/file/e1-1080",
        })
        self.assertEqual(second["driveUrl720p"], "https://hubdrive.wales/file/e2-720")
        self.assertEqual(second["driveUrl1080p"], "https://hubdrive.wales/file/e2-1080")

    def test_direct_downloads_with_streams(self):
        data, _ = self._details(HDHUB4U_MOVIE)
        self.assertEqual(data["title"], "Dune (2021)")
        self.assertEqual(data["type"], "movie_direct")
        main, sample = data["directDownloads"]
        self.assertEqual((main["quality"], main["size"]), ("1080p", "2.4GB"))
        self.assertEqual(main["watchUrl"], "https://hdstream4u.com/file/d")
        self.assertEqual(main["playerUrl"], "https://hubstream.art/p/d")
        self.assertEqual(sample["quality"], "Special")
        self.assertNotIn("watchUrl", sample)

    def test_plain_movie_downloads(self):
        data, _ = self._details(HDHUB4U_OLD_MOVIE)
        self.assertEqual(data["type"], "movie")
        self.assertEqual([(d["quality"], d["downloadUrl"]) for d in data["downloads"]], [
            ("720p", "https://techyboy4u.com/?id=m720"),
            ("480p", "https://techyboy4u.com/?id=m480"),
        ])
        self.assertEqual(data["downloads"][0]["size"], "900MB")

    def test_empty_page_and_foreign_host(self):
        with self.assertRaises(ExtractionEmptyError):
            self._details("<p>nothing here</p>")
        fetcher = FakeFetcher()
        with self.assertRaises(ValidationError):
            HDHub4uProvider(fetcher).details("https://attacker.test/hdhub4u.test/x")
        self.assertEqual(fetcher.calls, [])


if __name__ == "__main__":
    unittest.main()
