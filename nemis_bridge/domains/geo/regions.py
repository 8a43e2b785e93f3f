# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""County and sub-county code table.

Each county is matched by a name pattern; its sub-counties by ordered
patterns where the first match wins, falling back to the county's default
sub-county. Patterns are matched case-insensitively from the start of the
trimmed name, so common misspellings and abbreviations still resolve.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CountyRule:
    """Resolution rule for one county."""

    code: int
    name: str
    pattern: str
    sub_counties: tuple[tuple[str, int], ...]
    default_sub_county: int


COUNTY_RULES: tuple[CountyRule, ...] = (
    CountyRule(101, "Mombasa", r"momb", (
        (r"chang", 1198), (r"jom", 1199), (r"kis", 1200), (r"lik", 1201),
        (r"mv", 1202), (r"momb", 1202), (r"nya", 1203),
    ), 1202),
    CountyRule(102, "Kwale", r"kwa", (
        (r"kin", 1139), (r"lu", 1141), (r"msa", 1142), (r"ma", 1328), (r"sa", 1330),
    ), 1141),
    CountyRule(103, "Kilifi", r"kili", (
        (r"bah", 1094), (r"kil", 1094), (r"gan", 1095), (r"kal", 1096),
        (r"mag", 1098), (r"mal", 1099), (r"ra", 1100),
    ), 1099),
    CountyRule(104, "Tana River", r"tana", (
        (r"bu", 1279), (r"ta.*rth$", 1279), (r"ta.*ta$", 1280), (r"ta.*r$", 1281),
    ), 1279),
    CountyRule(105, "Lamu", r"lam", (
        (r"l.*ast$", 1148), (r"l.*est$", 1149),
    ), 1148),
    CountyRule(106, "Taita Taveta", r"tait", (
        (r"voi", 1275), (r"mwa", 1276), (r"tav", 1277), (r"wu", 1278), (r"tai", 1278),
    ), 1277),
    CountyRule(107, "Garissa", r"gar", (
        (r"ba", 1038), (r"da", 1039), (r"fa", 1040), (r"gar", 1041),
        (r"hu", 1042), (r"ij", 1043), (r"la", 1044),
    ), 1041),
    CountyRule(108, "Wajir", r"waj", (
        (r"bu", 1309), (r"eld", 1310), (r"hab", 1311), (r"tar", 1312),
        (r"wa.*ast$", 1313), (r"wa.*rth$", 1314), (r"w.*uth$", 1315), (r"w.*est$", 1316),
    ), 1313),
    CountyRule(109, "Mandera", r"mand", (
        (r"ba", 1167), (r"la", 1168), (r"m.*ral$", 1169), (r"m.*ast", 1170),
        (r"m.*rth", 1171), (r"m.*est", 1172), (r"ko", 1322), (r"ar", 1323), (r"ki", 1324),
    ), 1169),
    CountyRule(110, "Marsabit", r"mars", (
        (r"cha", 1173), (r"h.*rth$", 1174), (r"loi", 1175), (r"mar", 1176),
        (r"lai", 1177), (r"m.*th$", 1177), (r"mo", 1178), (r"so", 1179),
    ), 1178),
    CountyRule(111, "Isiolo", r"isi", (
        (r"g", 1053), (r"i", 1054), (r"m", 1055),
    ), 1054),
    CountyRule(112, "Meru", r"meru", (
        (r"b", 1180), (r"ig.*ral$", 1181), (r"ig.*rth$", 1182), (r"ig.*uth$", 1183),
        (r"im.*rth$", 1184), (r"im.*uth$", 1185), (r"m.*al$", 1186), (r"ti.*al$", 1187),
        (r"t.*ast$", 1188), (r"t.*est$", 1189),
    ), 1186),
    CountyRule(113, "Tharaka Nithi", r"thar", (
        (r"ma", 1282), (r"me", 1283), (r"t.*rth", 1284), (r"t.*uth", 1285),
    ), 1283),
    CountyRule(114, "Embu", r"emb", (
        (r"e.*ast$", 1033), (r"e.*rth$", 1034), (r"e.*est", 1035),
        (r"m.*rth$", 1036), (r"m.*uth$", 1037),
    ), 1034),
    CountyRule(115, "Kitui", r"kit", (
        (r"i", 1123), (r"ka", 1124), (r"ki.*i$", 1125), (r"k.*l$", 1126),
        (r"k.*t$", 1127), (r"kv", 1128), (r"l.*a$", 1129), (r"ma", 1130),
        (r"mum", 1131), (r"muti", 1132), (r"muto", 1133), (r"m.*l$", 1134),
        (r"m.*ast$", 1135), (r"m.*est$", 1136), (r"mi", 1136), (r"nz", 1137), (r"tse", 1138),
    ), 1126),
    CountyRule(116, "Machakos", r"mach", (
        (r"a.*r$", 1150), (r"kan", 1151), (r"kat", 1152), (r"mach", 1153),
        (r"mas", 1154), (r"mat", 1155), (r"mw", 1156), (r"y", 1157), (r"kal", 1325),
    ), 1153),
    CountyRule(117, "Makueni", r"mak", (
        (r"kat", 1158), (r"kib", 1159), (r"kil", 1160), (r"m.*u$", 1161),
        (r"m.*i$", 1162), (r"m.*ast$", 1163), (r"m.*est$", 1164), (r"muk", 1165), (r"nz", 1166),
    ), 1159),
    CountyRule(118, "Nyandarua", r"nyan", (
        (r"k.*p$", 1251), (r"k.*i$", 1252), (r"m", 1253), (r"n.*al$", 1254),
        (r"n.*rth$", 1255), (r"n.*uth$", 1256), (r"n.*est$", 1257), (r"g", 1332),
    ), 1251),
    CountyRule(119, "Nyeri", r"nyer", (
        (r"k.*ast$", 1258), (r"k.*est$", 1259), (r"m.*ast$", 1260), (r"m.*est$", 1261),
        (r"muk", 1262), (r"n.*l$", 1263), (r"n.*th$", 1264), (r"t", 1265),
    ), 1258),
    CountyRule(120, "Kirinyaga", r"kiri", (
        (r"k.*l$", 1101), (r"k.*ast$", 1102), (r"k.*est$", 1103),
        (r"m.*ast$", 1104), (r"m.*est$", 1105),
    ), 1103),
    CountyRule(121, "Murang'a", r"mura", (
        (r"gat", 1204), (r"kah", 1205), (r"kand", 1206), (r"kang", 1207),
        (r"kig", 1208), (r"ma", 1209), (r"m.*ast$", 1210), (r"m.*uth$", 1211),
    ), 1204),
    CountyRule(122, "Kiambu", r"kiam", (
        (r"g.*rth$", 1081), (r"g.*uth$", 1082), (r"gi", 1083), (r"ju", 1084),
        (r"kab", 1085), (r"k.*a$", 1086), (r"k.*u$", 1087), (r"kik", 1088),
        (r"la", 1089), (r"li", 1090), (r"ru", 1091), (r"t.*ast$", 1092), (r"t.*est$", 1093),
    ), 1084),
    CountyRule(123, "Turkana", r"tur", (
        (r"k", 1291), (r"l", 1292), (r"t.*l$", 1293), (r"t.*ast$", 1294),
        (r"t.*rth$", 1295), (r"t.*uth$", 1296), (r"t.*est$", 1297),
    ), 1293),
    CountyRule(124, "West Pokot", r"west", (
        (r"ki", 1317), (r"p.*al$", 1318), (r"p.*rth$", 1319), (r"p.*uth$", 1320),
        (r"w.*ot$", 1321),
    ), 1320),
    CountyRule(125, "Samburu", r"samb", (
        (r"sa.*al$", 1266), (r"sa.*ast$", 1267), (r"sa.*rth$", 1268),
    ), 1266),
    CountyRule(126, "Trans Nzoia", r"trans", (
        (r"e", 1286), (r"ki", 1287), (r"kw", 1288), (r"t.*ast$", 1289),
        (r"s", 1290), (r"t.*est$", 1290),
    ), 1289),
    CountyRule(127, "Uasin Gishu", r"uas", (
        (r"e.*ast$", 1298), (r"a", 1298), (r"e.*est$", 1299), (r"k", 1300),
        (r"mo", 1301), (r"s", 1302), (r"wa", 1303), (r"ka", 1303),
    ), 1299),
    CountyRule(128, "Elgeyo Marakwet", r"elg|marak", (
        (r"k.*rth$", 1029), (r"k.*uth$", 1030), (r"m.*ast$", 1031), (r"m.*est$", 1032),
    ), 1031),
    CountyRule(129, "Nandi", r"nand", (
        (r"c", 1234), (r"n.*al$", 1235), (r"n.*ast$", 1236), (r"n.*rth$", 1237),
        (r"n.*uth$", 1238), (r"t", 1239),
    ), 1235),
    CountyRule(130, "Baringo", r"bar", (
        (r"b.*l$", 1001), (r"b.*h$", 1002), (r"t.*est$", 1003), (r"e.*t$", 1003),
        (r"k", 1004), (r"ma", 1005), (r"mo", 1006), (r"t.*ast$", 1331),
    ), 1001),
    CountyRule(131, "Laikipia", r"laik", (
        (r"l.*l$", 1143), (r"l.*ast$", 1144), (r"l.*rth$", 1145), (r"l.*est$", 1146),
        (r"n", 1147),
    ), 1143),
    CountyRule(132, "Nakuru", r"nak", (
        (r"g", 1223), (r"k", 1224), (r"molo", 1226), (r"n.*a$", 1227),
        (r"n.*u$", 1228), (r"n.*rth$", 1229), (r"n.*est$", 1230), (r"nj", 1231),
        (r"r", 1232), (r"s", 1233),
    ), 1228),
    CountyRule(133, "Narok", r"nar", (
        (r"n.*ast$", 1240), (r"n.*rth$", 1241), (r"n.*uth$", 1242), (r"n.*est$", 1243),
        (r"t.*ast$", 1244), (r"t.*est$", 1245),
    ), 1241),
    CountyRule(134, "Kajiado", r"kaji", (
        (r"is", 1056), (r"k.*al$", 1057), (r"k.*rth$", 1058), (r"k.*est$", 1059),
        (r"l", 1060), (r"m", 1061),
    ), 1057),
    CountyRule(135, "Kericho", r"ker", (
        (r"be", 1075), (r"bu", 1076), (r"ke", 1077), (r"ki", 1078), (r"lo", 1079), (r"s", 1080),
    ), 1077),
    CountyRule(136, "Bomet", r"bome", (
        (r"b.*l$", 1007), (r"b.*t$", 1008), (r"c", 1009), (r"k", 1010), (r"s", 1011),
    ), 1007),
    CountyRule(137, "Kakamega", r"kaka", (
        (r"b", 1062), (r"k.*l$", 1063), (r"k.*ast$", 1064), (r"k.*rth$", 1065),
        (r"k.*uth$", 1066), (r"kh", 1067), (r"li", 1068), (r"lu", 1069),
        (r"mat", 1070), (r"matu", 1071), (r"mu.*s$", 1072), (r"mu.*t$", 1073), (r"n", 1074),
    ), 1072),
    CountyRule(138, "Vihiga", r"vih", (
        (r"e", 1304), (r"h", 1305), (r"l", 1306), (r"s", 1307), (r"v", 1308),
    ), 1308),
    CountyRule(139, "Bungoma", r"bung", (
        (r"b.*a$", 1012), (r"b.*al$", 1013), (r"b.*ast$", 1014), (r"b.*rth$", 1015),
        (r"b.*uth$", 1016), (r"b.*est$", 1017), (r"ch", 1018), (r"ki", 1019),
        (r"m.*n$", 1020), (r"w", 1021), (r"k", 1326),
    ), 1013),
    CountyRule(140, "Busia", r"bus", (
        (r"bun", 1022), (r"bus", 1023), (r"but", 1024), (r"na", 1025), (r"sa", 1026),
        (r"t.*rth$", 1027), (r"t.*uth$", 1028),
    ), 1023),
    CountyRule(141, "Siaya", r"sia", (
        (r"bo", 1269), (r"ge", 1270), (r"ra", 1271), (r"si", 1272), (r"uge", 1273), (r"ugu", 1274),
    ), 1272),
    CountyRule(142, "Kisumu", r"kisu", (
        (r"k.*al$", 1116), (r"k.*ast$", 1117), (r"k.*est$", 1118), (r"m", 1119),
        (r"n.*h$", 1120), (r"nyando", 1121), (r"s", 1122),
    ), 1116),
    CountyRule(143, "Homa Bay", r"hom", (
        (r"h.*ay$", 1045), (r"mb", 1046), (r"nd", 1047), (r"la.*ast$", 1048),
        (r"la.*rth$", 1049), (r"la.*uth$", 1050), (r"ra", 1051), (r"s", 1052),
    ), 1045),
    CountyRule(144, "Migori", r"migo", (
        (r"aw", 1190), (r"k.*ast$", 1191), (r"k.*est$", 1192), (r"mig", 1193),
        (r"ny", 1194), (r"ro", 1195), (r"s.*st$", 1196), (r"ur", 1197), (r"ma", 1329),
    ), 1195),
    CountyRule(145, "Kisii", r"kisi", (
        (r"gu", 1106), (r"g.*th$", 1107), (r"ke", 1108), (r"k.*al$", 1109),
        (r"k.*th$", 1110), (r"mar", 1112), (r"mas", 1113), (r"ny", 1114),
        (r"sa", 1115), (r"et", 1327),
    ), 1110),
    CountyRule(146, "Nyamira", r"nyam", (
        (r"bo", 1246), (r"man", 1247), (r"ma.*th$", 1248), (r"n.*rth$", 1249), (r"n.*uth$", 1250),
    ), 1247),
    CountyRule(147, "Nairobi", r"nai", (
        (r"dag", 1212), (r"emb", 1213), (r"kam", 1214), (r"kasa", 1215),
        (r"kib", 1216), (r"lang", 1217), (r"mak", 1218), (r"mat", 1219),
        (r"nj", 1220), (r"st", 1221), (r"wes", 1222),
    ), 1221),
)
