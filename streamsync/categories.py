"""Fixed catalog category definitions streamed from the remote store."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CategoryDescriptor:
    """Describes one catalog category backed by paginated JSON shards."""

    id: str
    name: str


CATEGORIES: tuple[CategoryDescriptor, ...] = (
    CategoryDescriptor(id="acao", name="Ação"),
    CategoryDescriptor(id="amc-plus", name="AMC+"),
    CategoryDescriptor(id="animacao", name="Animação"),
    CategoryDescriptor(id="apple-tv", name="Apple TV+"),
    CategoryDescriptor(id="aventura", name="Aventura"),
    CategoryDescriptor(id="brasil-paralelo", name="Brasil Paralelo"),
    CategoryDescriptor(id="cinema", name="Cinema"),
    CategoryDescriptor(id="claro-video", name="Claro Vídeo"),
    CategoryDescriptor(id="comedia", name="Comédia"),
    CategoryDescriptor(id="crime", name="Crime"),
    CategoryDescriptor(id="crunchyroll", name="Crunchyroll"),
    CategoryDescriptor(id="cursos", name="Cursos"),
    CategoryDescriptor(id="directv", name="DirecTV"),
    CategoryDescriptor(id="discovery", name="Discovery"),
    CategoryDescriptor(id="disney", name="Disney+"),
    CategoryDescriptor(id="docu", name="Documentários (Séries)"),
    CategoryDescriptor(id="documentario", name="Documentários"),
    CategoryDescriptor(id="doramas", name="Doramas"),
    CategoryDescriptor(id="drama", name="Drama"),
    CategoryDescriptor(id="dublagem-nao-oficial", name="Dublagem Não Oficial"),
    CategoryDescriptor(id="especial-infantil", name="Especial Infantil"),
    CategoryDescriptor(id="esportes", name="Esportes"),
    CategoryDescriptor(id="familia", name="Família"),
    CategoryDescriptor(id="fantasia", name="Fantasia"),
    CategoryDescriptor(id="faroeste", name="Faroeste"),
    CategoryDescriptor(id="ficcao-cientifica", name="Ficção Científica"),
    CategoryDescriptor(id="funimation-now", name="Funimation"),
    CategoryDescriptor(id="globoplay", name="Globoplay"),
    CategoryDescriptor(id="guerra", name="Guerra"),
    CategoryDescriptor(id="hot-adultos-bella-da-semana", name="Adultos - Bella da Semana"),
    CategoryDescriptor(id="hot-adultos-legendado", name="Adultos - Legendado"),
    CategoryDescriptor(id="hot-adultos", name="Adultos"),
    CategoryDescriptor(id="lancamentos", name="Lançamentos"),
    CategoryDescriptor(id="legendadas", name="Séries Legendadas"),
    CategoryDescriptor(id="legendados", name="Filmes Legendados"),
    CategoryDescriptor(id="lionsgate", name="Lionsgate"),
    CategoryDescriptor(id="max", name="Max"),
    CategoryDescriptor(id="nacionais", name="Nacionais"),
    CategoryDescriptor(id="netflix", name="Netflix"),
    CategoryDescriptor(id="novelas-turcas", name="Novelas Turcas"),
    CategoryDescriptor(id="novelas", name="Novelas"),
    CategoryDescriptor(id="oscar-2025", name="Oscar 2025"),
    CategoryDescriptor(id="outras-produtoras", name="Outras Produtoras"),
    CategoryDescriptor(id="outros", name="Outros"),
    CategoryDescriptor(id="outros_filmes", name="Outros Filmes"),
    CategoryDescriptor(id="paramount", name="Paramount+"),
    CategoryDescriptor(id="plutotv", name="Pluto TV"),
    CategoryDescriptor(id="prime-video", name="Prime Video"),
    CategoryDescriptor(id="programas-de-tv", name="Programas de TV"),
    CategoryDescriptor(id="religiosos", name="Religiosos"),
    CategoryDescriptor(id="romance", name="Romance"),
    CategoryDescriptor(id="sbt", name="SBT"),
    CategoryDescriptor(id="shows", name="Shows"),
    CategoryDescriptor(id="stand-up-comedy", name="Stand Up Comedy"),
    CategoryDescriptor(id="star", name="Star+"),
    CategoryDescriptor(id="sugestao-da-semana", name="Sugestão da Semana"),
    CategoryDescriptor(id="suspense", name="Suspense"),
    CategoryDescriptor(id="terror", name="Terror"),
    CategoryDescriptor(id="uhd-4k", name="UHD 4K"),
    CategoryDescriptor(id="univer", name="Univer"),
)


CATEGORY_COUNT = len(CATEGORIES)
